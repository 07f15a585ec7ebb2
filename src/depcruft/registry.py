"""Deduplicating registry of package units found during one scan."""

import logging
from pathlib import Path

from depcruft.models import PackageUnit
from depcruft.rules.base import EcosystemRules, relative_key

log = logging.getLogger(__name__)


class UnitRegistry:
    """Maps a unit's directory (relative to the repository root) to one PackageUnit.

    The first recognized file under a directory creates the unit; later
    files can only mark it invalid, never rename it or make it valid again.
    """

    def __init__(self, root: Path, rules: EcosystemRules) -> None:
        self.root = Path(root)
        self.rules = rules
        self._units: dict[str, PackageUnit] = {}

    def register(self, directory: Path, file: Path | str) -> PackageUnit | None:
        """Record ``file`` found in ``directory``.

        Returns the unit the file belongs to, or None if it was ignored.
        """
        rules = self.rules
        file = Path(directory) / Path(file).name
        if not rules.is_target_file(file):
            return None

        key = relative_key(self.root, rules.unit_directory(file))
        if not key:
            # loose files in the repository root belong to no package
            return None

        unit = self._units.get(key)
        if unit is None:
            unit = rules.identify(self.root, file)
            self._units[key] = unit
            log.debug("Registered %s at %s", unit.package_name, key)
        if not unit.invalid and rules.is_invalid_file(file):
            unit.invalid = True
        return unit

    @property
    def units(self) -> list[PackageUnit]:
        return list(self._units.values())

    def get(self, relative_path: str) -> PackageUnit | None:
        return self._units.get(relative_path)

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, relative_path: str) -> bool:
        return relative_path in self._units
