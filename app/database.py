"""Async SQLAlchemy engine, session factory and the request-scoped session dependency."""

from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings

engine = create_async_engine(
	get_settings().database_url,
	pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
	engine,
	class_=AsyncSession,
	expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
	"""Yield one session per request; commit on success, roll back on any failure.

	``BaseException`` is caught so that a cancelled request never commits a
	half-applied write.
	"""
	async with async_session_factory() as session:
		try:
			yield session
			await session.commit()
		except BaseException:
			await session.rollback()
			raise
