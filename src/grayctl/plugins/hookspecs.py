"""Pluggy hook specifications for grayctl policy events.

Hooks fire after the fact and cannot veto or alter a decision. They run on
the broadcaster's delivery path, so a slow hook delays only other hooks.
"""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("grayctl")


class GrayctlHookSpec:
    """Hook specifications for the grayctl plugin system."""

    @hookspec
    def policy_resolved(self, domain: str, apply: bool, observer_count: int) -> None:
        """Called after the policy for *domain* was pushed to its observers."""

    @hookspec
    def overrides_evicted(self, domains: list[str]) -> None:
        """Called after a sweep evicted at least one expired override."""
