from app.models.gym import Gym
from app.models.schedule import (
    Class, ClassSession, ClassScheduleRule, ClassScheduleException
)
