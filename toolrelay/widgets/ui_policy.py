from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional


def normalize_token(value: str) -> str:
    return value.strip().lower()


def normalize_tokens(values: Iterable[str]) -> FrozenSet[str]:
    tokens = (normalize_token(value) for value in values)
    return frozenset(token for token in tokens if token)


@dataclass(frozen=True)
class UiRenderPolicy:
    """
    Controls whether enrichment marks a connector's results as UI-eligible.

    Args:
        enabled: Global switch; when False nothing renders.
        allowed_apps: Lower-cased identifiers allowed to render, or None to allow every app.
        blocked_apps: Lower-cased identifiers that never render. Always wins over the allow-list.
    """

    enabled: bool = True
    allowed_apps: Optional[FrozenSet[str]] = None
    blocked_apps: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        enabled: bool = True,
        allowed_apps: Optional[Iterable[str]] = None,
        blocked_apps: Optional[Iterable[str]] = None,
    ) -> "UiRenderPolicy":
        """Normalize raw identifier lists into a policy."""
        return cls(
            enabled=enabled,
            allowed_apps=normalize_tokens(allowed_apps) if allowed_apps is not None else None,
            blocked_apps=normalize_tokens(blocked_apps or ()),
        )


def is_ui_render_allowed(
    policy: UiRenderPolicy,
    app_name: Optional[str] = None,
    app_id: Optional[str] = None,
) -> bool:
    if not policy.enabled:
        return False

    identifiers = [
        normalize_token(value) for value in (app_name, app_id) if isinstance(value, str)
    ]
    identifiers = [value for value in identifiers if value]

    if any(identifier in policy.blocked_apps for identifier in identifiers):
        return False

    if policy.allowed_apps is None:
        return True

    return any(identifier in policy.allowed_apps for identifier in identifiers)
