"""Unit tests for engine and session factories."""

import pytest
from sqlalchemy import text
from sqlalchemy.pool import NullPool

from jobs.utils.database import create_task_engine, create_task_session_maker
from upline import database


class TestSessionFactories:
    """Test application and task session factories."""

    def test_sessions_keep_attributes_after_commit(self):
        """Services read attributes after commit without a reload."""
        assert database.async_session_maker.kw["expire_on_commit"] is False

    def test_reporting_falls_back_to_primary(self):
        """Without a replica, reports share the primary factory."""
        assert database.reporting_session_maker is database.async_session_maker
        assert database.reporting_engine is database.engine

    @pytest.mark.asyncio
    async def test_task_engine_does_not_pool(self, tmp_path):
        """Task engines open a fresh connection per checkout."""
        task_engine = create_task_engine(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}")
        try:
            assert isinstance(task_engine.pool, NullPool)

            maker = create_task_session_maker(task_engine)
            async with maker() as session:
                result = await session.execute(text("SELECT 1"))
                assert result.scalar() == 1
        finally:
            await task_engine.dispose()
