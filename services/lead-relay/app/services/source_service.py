"""
Source and mapping-rule administration
"""
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List, Sequence
import uuid

from app.models.source import Source
from app.models.mapping import FieldMappingRule
from app.services.payload_mapper import MappingRule


class DuplicateSourceError(ValueError):
    pass


async def get_source_by_name(db: AsyncSession, name: str) -> Optional[Source]:
    result = await db.execute(select(Source).where(Source.name == name))
    return result.scalar_one_or_none()


async def get_source(db: AsyncSession, source_id: uuid.UUID) -> Optional[Source]:
    return await db.get(Source, source_id)


async def list_sources(db: AsyncSession) -> List[Source]:
    result = await db.execute(select(Source).order_by(Source.name))
    return list(result.scalars().all())


async def create_source(
    db: AsyncSession,
    name: str,
    source_type: Optional[str] = None,
    feed_url: Optional[str] = None
) -> Source:
    if await get_source_by_name(db, name):
        raise DuplicateSourceError(f"Source '{name}' already exists")

    source = Source(name=name, type=source_type or "webhook", feed_url=feed_url)
    db.add(source)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateSourceError(f"Source '{name}' already exists") from exc
    await db.refresh(source)
    return source


async def update_feed_url(db: AsyncSession, source: Source, feed_url: Optional[str]) -> Source:
    """feed_url is the only attribute that may change after creation"""
    source.feed_url = feed_url
    await db.commit()
    await db.refresh(source)
    return source


async def list_mapping_rules(db: AsyncSession, source_id: uuid.UUID) -> List[FieldMappingRule]:
    result = await db.execute(
        select(FieldMappingRule)
        .where(FieldMappingRule.source_id == source_id)
        .order_by(FieldMappingRule.position)
    )
    return list(result.scalars().all())


async def load_rules(db: AsyncSession, source_id: uuid.UUID) -> List[MappingRule]:
    return [MappingRule.from_model(rule) for rule in await list_mapping_rules(db, source_id)]


async def replace_mapping_rules(
    db: AsyncSession,
    source_id: uuid.UUID,
    rules: Sequence[MappingRule]
) -> List[FieldMappingRule]:
    """Delete every rule of the source and insert the new set in one transaction"""
    try:
        await db.execute(delete(FieldMappingRule).where(FieldMappingRule.source_id == source_id))
        rows = [
            FieldMappingRule(
                source_id=source_id,
                position=position,
                source_field_path=rule.source_field_path,
                target_kind=rule.target_kind,
                target_code=rule.target_code,
            )
            for position, rule in enumerate(rules)
        ]
        db.add_all(rows)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return await list_mapping_rules(db, source_id)
