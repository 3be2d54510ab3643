# Importar todos los modelos para que create_all los detecte
from app.db.base_class import Base  # noqa
from app.models.gym import Gym  # noqa
from app.models.schedule import (
    Class,
    ClassSession,
    ClassScheduleRule,
    ClassScheduleException,
)  # noqa
