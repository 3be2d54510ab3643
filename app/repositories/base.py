from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy.orm import Query, Session

from app.core.exceptions import NotFoundError
from app.db.base_class import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    CRUD genérico para los modelos del back-office.

    Todos los métodos aceptan un gym_id opcional: si el modelo pertenece a un
    gimnasio (tiene columna gym_id) las consultas quedan limitadas a ese tenant.
    Cada escritura se confirma en su propia transacción.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    @property
    def is_tenant_scoped(self) -> bool:
        return hasattr(self.model, "gym_id")

    def scoped(self, db: Session, gym_id: Optional[int] = None) -> Query:
        """Query base del modelo, filtrada por gimnasio cuando aplica."""
        query = db.query(self.model)
        if gym_id is not None and self.is_tenant_scoped:
            query = query.filter(self.model.gym_id == gym_id)
        return query

    def get(self, db: Session, id: Any, gym_id: Optional[int] = None) -> Optional[ModelType]:
        """Devuelve el objeto o None si no existe (o es de otro gimnasio)."""
        return self.scoped(db, gym_id).filter(self.model.id == id).first()

    def _save(self, db: Session, db_obj: ModelType) -> ModelType:
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    @staticmethod
    def _as_dict(obj_in: Union[BaseModel, Dict[str, Any]], partial: bool = False) -> Dict[str, Any]:
        # model_dump conserva los datetime aware; jsonable_encoder los pasaría a str
        if isinstance(obj_in, dict):
            return dict(obj_in)
        return obj_in.model_dump(exclude_unset=partial)

    def create(self, db: Session, *, obj_in: Union[CreateSchemaType, Dict[str, Any]],
               gym_id: Optional[int] = None) -> ModelType:
        data = self._as_dict(obj_in)
        if gym_id is not None and self.is_tenant_scoped:
            data["gym_id"] = gym_id
        return self._save(db, self.model(**data))

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        gym_id: Optional[int] = None
    ) -> ModelType:
        """
        Aplica los campos recibidos sobre db_obj.

        Con un schema solo se aplican los campos enviados (exclude_unset); con un
        dict se aplican todas sus claves. Las claves que no son columnas del modelo
        se ignoran.

        Raises:
            NotFoundError: si gym_id no coincide con el gimnasio del objeto
        """
        if gym_id is not None and getattr(db_obj, "gym_id", gym_id) != gym_id:
            raise NotFoundError(f"{self.model.__name__} {db_obj.id} no encontrado en el gimnasio {gym_id}")

        for field, value in self._as_dict(obj_in, partial=True).items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        return self._save(db, db_obj)

    def remove(self, db: Session, *, id: int, gym_id: Optional[int] = None) -> ModelType:
        obj = self.get(db, id=id, gym_id=gym_id)
        if obj is None:
            raise NotFoundError(f"{self.model.__name__} {id} no encontrado")
        db.delete(obj)
        db.commit()
        return obj
