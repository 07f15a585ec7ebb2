"""Classification of package units against the user's filters."""

from depcruft.models import FilterOptions, MatchType, PackageUnit
from depcruft.rules.base import EcosystemRules


def classify(
    unit: PackageUnit,
    options: FilterOptions,
    rules: EcosystemRules,
) -> tuple[MatchType, bool]:
    """
    Assign exactly one MatchType to a unit.

    Precedence: invalid, matched, native, snapshot. Each category only
    applies when its filter is enabled; anything left over is
    ``unknown`` and never included.

    Args:
        unit: Unit produced by the registry
        options: Filters for this scan
        rules: Ecosystem predicates

    Returns:
        Tuple of (match_type, include)
    """
    if unit.invalid and options.show_invalid_packages:
        return MatchType.INVALID, True

    target = options.target_package.strip()
    if target and rules.matches_target(unit, target):
        return MatchType.MATCHED, True

    if options.show_platform_specific_binaries and rules.is_platform_specific(unit):
        return MatchType.NATIVE, True

    if options.include_snapshot and rules.is_prerelease(unit.version):
        return MatchType.SNAPSHOT, True

    return MatchType.UNKNOWN, False


def display_name(unit: PackageUnit, match_type: MatchType, rules: EcosystemRules) -> str:
    """Name shown in the preview; platform units may carry their platform."""
    if match_type == MatchType.NATIVE and rules.label_platform is not None:
        return rules.label_platform(unit)
    return unit.package_name
