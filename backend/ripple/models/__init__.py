from ripple.models.project import Project
from ripple.models.task import Task
from ripple.models.dependency import Dependency

__all__ = ["Project", "Task", "Dependency"]
