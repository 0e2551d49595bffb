"""Database setup for background tasks."""
from sqlalchemy.pool import NullPool

from upline.database import create_engine, create_session_maker


def create_task_engine(url: str | None = None):
    """Create an engine for use inside task workers."""
    # Each actor runs on its own event loop; pooled connections cannot cross loops
    return create_engine(url, echo=False, poolclass=NullPool)


def create_task_session_maker(engine=None):
    """Create a session maker for tasks."""
    if engine is None:
        engine = create_task_engine()
    return create_session_maker(engine)


# Ready-to-use instances
task_engine = create_task_engine()
task_session_maker = create_task_session_maker(task_engine)
