"""Data access repository."""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import InvocationLog, ModePreference


class PreferenceRepository:
    """Repository for per-user mode preferences."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session."""
        self.db = db

    async def get_mode(self, telegram_user_id: int) -> Optional[str]:
        """Get the user's active mode, if one was chosen."""
        preference = await self.db.get(ModePreference, telegram_user_id)
        return preference.mode if preference else None

    async def set_mode(self, telegram_user_id: int, mode: str) -> ModePreference:
        """Create or update the user's active mode."""
        preference = await self.db.get(ModePreference, telegram_user_id)
        if preference is None:
            preference = ModePreference(telegram_user_id=telegram_user_id, mode=mode)
            self.db.add(preference)
        else:
            preference.mode = mode
        preference.updated_at = datetime.now(timezone.utc)
        await self.db.flush()
        return preference


class InvocationRepository:
    """Repository for command history."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session."""
        self.db = db

    async def record(
        self,
        telegram_user_id: int,
        command: str,
        arguments: str = "",
        mode: Optional[str] = None,
        project_path: Optional[str] = None,
        cost_usd: float = 0.0,
    ) -> InvocationLog:
        """Record a command invocation."""
        entry = InvocationLog(
            telegram_user_id=telegram_user_id,
            command=command,
            arguments=arguments,
            mode=mode,
            project_path=project_path,
            cost_usd=cost_usd,
            timestamp=datetime.now(timezone.utc),
        )

        self.db.add(entry)
        await self.db.flush()
        return entry

    async def recent(self, telegram_user_id: int, limit: int = 10) -> list[InvocationLog]:
        """List the user's most recent invocations, newest first."""
        result = await self.db.execute(
            select(InvocationLog)
            .where(InvocationLog.telegram_user_id == telegram_user_id)
            .order_by(InvocationLog.timestamp.desc(), InvocationLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def total_cost(self, telegram_user_id: int) -> float:
        """Get total cost for user."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(InvocationLog.cost_usd), 0.0))
            .where(InvocationLog.telegram_user_id == telegram_user_id)
        )
        return float(result.scalar_one())
