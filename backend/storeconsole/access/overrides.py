# storeconsole/access/overrides.py

from __future__ import annotations

import logging
import uuid
from typing import Optional

from storeconsole.access.context import AccessContext, OverrideReason, Principal
from storeconsole.access.errors import StoreUnavailable
from storeconsole.access.repository import StoreRecord
from storeconsole.core.roles import Role

logger = logging.getLogger(__name__)


class PrincipalOverride:
    """
    Lets the break-glass account and platform admins act as owner on any
    active store without a membership row.
    """

    def __init__(self, break_glass_user_id: Optional[uuid.UUID] = None):
        self.break_glass_user_id = break_glass_user_id

    def match(self, principal: Principal) -> Optional[OverrideReason]:
        if self.break_glass_user_id is not None and principal.id == self.break_glass_user_id:
            return OverrideReason.BREAK_GLASS
        if principal.is_platform_admin:
            return OverrideReason.PLATFORM_ADMIN
        return None

    def grant(
        self,
        principal: Principal,
        reason: OverrideReason,
        store: Optional[StoreRecord],
    ) -> AccessContext:
        # Deactivation is a hard kill switch, overrides included.
        if store is None or not store.is_active:
            logger.info(
                "Override denied: store unavailable user=%s store_active=%s reason=%s",
                principal.id,
                None if store is None else store.is_active,
                reason.value,
            )
            raise StoreUnavailable()

        logger.warning(
            "Store access override: user=%s store=%s reason=%s",
            principal.id,
            store.id,
            reason.value,
        )
        return AccessContext(
            store_id=store.id,
            store_name=store.name,
            role=Role.OWNER,
            override=reason,
        )
