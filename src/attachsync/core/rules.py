"""Rule resolution by file extension."""

from dataclasses import dataclass

from attachsync.core.settings import Rule, Settings
from attachsync.core.types import LocationMode


def resolve_rule(extension: str, settings: Settings) -> Rule | None:
    """First rule, in declared order, that lists ``extension``."""
    return next((rule for rule in settings.rules if rule.matches(extension)), None)


@dataclass(frozen=True)
class EffectivePolicy:
    """Patterns and placement applied to one attachment."""

    name_pattern: str
    path_pattern: str
    location_mode: LocationMode
    rule: Rule | None = None


def effective_policy(extension: str, settings: Settings) -> EffectivePolicy | None:
    """
    Policy for an attachment extension.

    Once at least one rule exists the rule list acts as an allowlist:
    an unmatched extension yields None and the attachment is skipped.
    With no rules at all the configured defaults apply to everything.
    """
    rule = resolve_rule(extension, settings)
    if rule is None:
        if settings.rules:
            return None
        return EffectivePolicy(
            name_pattern=settings.default_name_pattern,
            path_pattern=settings.default_path_pattern,
            location_mode=LocationMode.PATTERN,
        )
    return EffectivePolicy(
        name_pattern=rule.name_pattern,
        path_pattern=rule.path_pattern,
        location_mode=rule.location_mode or LocationMode.PATTERN,
        rule=rule,
    )
