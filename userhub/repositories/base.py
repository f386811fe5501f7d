"""
Base repository with generic CRUD operations.
Every write commits immediately; a repository call is one unit of work.
"""
from typing import TypeVar, Generic, Type, Optional, List, Tuple, Any

from sqlmodel import SQLModel, select
from sqlmodel.sql.expression import SelectOfScalar
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from userhub.models.user import utc_now

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository with CRUD operations.
    Inherit and specify the model class.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, obj_in: dict) -> ModelType:
        """Insert a row built from obj_in and return it with defaults filled."""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self.session.commit()
        await self.session.refresh(db_obj)
        return db_obj

    async def get(self, record_id: Any) -> Optional[ModelType]:
        return await self.session.get(self.model, record_id)

    async def page(
        self,
        query: SelectOfScalar,
        offset: int,
        limit: int,
        order_by: str = "created_at"
    ) -> Tuple[List[ModelType], int]:
        """
        One page of query (newest first) and the total row count.
        Both statements run on this session, one after the other.
        """
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.session.exec(count_query)
        total = total_result.one()

        order_column = getattr(self.model, order_by)
        query = query.order_by(order_column.desc()).offset(offset).limit(limit)
        result = await self.session.exec(query)
        return list(result.all()), total

    async def update(self, record_id: Any, changes: dict) -> Optional[ModelType]:
        """
        Apply changes to a row. None is written as given so nullable
        columns can be cleared; unknown keys are ignored.
        """
        db_obj = await self.get(record_id)
        if not db_obj:
            return None

        for field, value in changes.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        if hasattr(db_obj, "updated_at"):
            db_obj.updated_at = utc_now()

        self.session.add(db_obj)
        await self.session.commit()
        await self.session.refresh(db_obj)
        return db_obj

    async def delete(self, record_id: Any) -> bool:
        """Delete a row (ORM cascades apply). False if it did not exist."""
        db_obj = await self.get(record_id)
        if not db_obj:
            return False

        await self.session.delete(db_obj)
        await self.session.commit()
        return True
