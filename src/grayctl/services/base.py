"""BaseService — foundation for grayctl services.

Every service receives a :class:`Workspace` at construction time. The
workspace provides the policy store, the observer registry, and the
broadcaster.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grayctl.infrastructure.workspace import Workspace


class BaseService:
    """Base for service-layer classes.

    Usage::

        class StatusService(BaseService):
            def count(self) -> ServiceResult:
                snapshot = self._workspace.store.snapshot()
                ...
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace
