"""Per-ecosystem scanning rules."""

from depcruft.errors import UnsupportedEcosystemError
from depcruft.models import Ecosystem
from depcruft.rules import gradle, maven, npm, pip
from depcruft.rules.base import EcosystemRules, Identity

RULES: dict[Ecosystem, EcosystemRules] = {
    Ecosystem.MAVEN: maven.RULES,
    Ecosystem.GRADLE: gradle.RULES,
    Ecosystem.NPM: npm.RULES,
    Ecosystem.PIP: pip.RULES,
}


def get_rules(ecosystem: Ecosystem | str) -> EcosystemRules:
    """Look up the rules for an ecosystem by enum or name."""
    try:
        # Ecosystem is a str enum, so both spellings lower-case the same way
        return RULES[Ecosystem(ecosystem.lower())]
    except ValueError:
        raise UnsupportedEcosystemError(
            f"Unknown ecosystem: {ecosystem} (choose from {', '.join(e.value for e in Ecosystem)})"
        ) from None


__all__ = ["EcosystemRules", "Identity", "RULES", "get_rules"]
