from app.schemas.gym import Gym, GymCreate, GymUpdate
from app.schemas.schedule import (
    Class,
    ClassCreate,
    ClassUpdate,
    ClassSession,
    ClassSessionCreate,
    ClassSessionUpdate,
    ProgramGenerateRequest,
    ProgramGenerateResult,
    ProgramDeleteRequest,
    ProgramDeleteResult,
    SpecificTimeFilter,
    AllTimesFilter,
    SessionConflict,
    SessionConflictResponse,
    SessionWriteResult,
    ScheduleRule,
    ScheduleRuleCreate,
    ScheduleRuleUpdate,
    ScheduleException,
    ScheduleExceptionUpsert,
    RuleGenerateRequest,
    RuleGenerateResult,
)
