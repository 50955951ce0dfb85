# src/services/base_service.py
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar
from sqlalchemy import Select, and_, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from utils.exceptions import handle_db_exception
from utils.logger import setup_logger

ModelType = TypeVar("ModelType")


class BaseService(Generic[ModelType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model
        self.logger = setup_logger(f"SERVICE_{model.__name__}")

    def _filtered(self, query: Select, filters: Optional[Dict[str, Any]]) -> Select:
        if not filters:
            return query
        conditions = [
            getattr(self.model, field) == value
            for field, value in filters.items()
            if hasattr(self.model, field)
        ]
        return query.where(and_(*conditions)) if conditions else query

    async def get_by(self, db: AsyncSession, **filters: Any) -> Optional[ModelType]:
        result = await db.execute(self._filtered(select(self.model), filters))
        return result.scalars().first()

    async def create(self, db: AsyncSession, values: Dict[str, Any]) -> ModelType:
        """Insert one row and commit"""
        db_obj = self.model(**values)
        try:
            db.add(db_obj)
            await db.commit()
            await db.refresh(db_obj)
        except (IntegrityError, SQLAlchemyError) as e:
            await handle_db_exception(db, f"create {self.model.__name__}", e)

        self.logger.info(f"Created {self.model.__name__} with ID: {db_obj.id}")
        return db_obj

    async def paginate(
        self,
        db: AsyncSession,
        query: Select,
        page: int,
        limit: int,
        options: Sequence[Any] = (),
    ) -> Tuple[Sequence[ModelType], int]:
        """Run one page of an ordered query alongside its total count"""
        total_result = await db.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        total = total_result.scalar_one()

        page_query = query.options(*options).offset((page - 1) * limit).limit(limit)
        result = await db.execute(page_query)
        items: List[ModelType] = list(result.scalars().all())
        return items, total
