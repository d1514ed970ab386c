"""Services: the publish workflow."""

from .errors import PublishError
from .publish import PublishOptions, PublishReport, PublishWorkflow

__all__ = [
    "PublishError",
    "PublishOptions",
    "PublishReport",
    "PublishWorkflow",
]
