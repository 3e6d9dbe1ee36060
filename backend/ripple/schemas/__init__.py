from ripple.schemas.project import ProjectCreate, ProjectUpdate, ProjectRead
from ripple.schemas.task import (
    TaskCreate,
    TaskUpdate,
    TaskDrag,
    TaskCompletion,
    TaskRead,
    TaskUpdateRead,
    ScheduleBatchRead,
    TaskScheduleRead,
)
from ripple.schemas.dependency import DependencyCreate, DependencyRead, DependencyScheduleRead
from ripple.schemas.schedule import (
    ProjectScheduleRead,
    TaskInsightRead,
    ScheduleWarningRead,
    CriticalPathRead,
    ProjectImport,
    ImportResult,
)

__all__ = [
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectRead",
    "TaskCreate",
    "TaskUpdate",
    "TaskDrag",
    "TaskCompletion",
    "TaskRead",
    "TaskUpdateRead",
    "ScheduleBatchRead",
    "TaskScheduleRead",
    "DependencyCreate",
    "DependencyRead",
    "DependencyScheduleRead",
    "ProjectScheduleRead",
    "TaskInsightRead",
    "ScheduleWarningRead",
    "CriticalPathRead",
    "ProjectImport",
    "ImportResult",
]
