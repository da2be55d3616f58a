"""Workflow definitions by request type."""

from ..value_objects.enums import RequestType
from .definition import WorkflowDefinition
from .handlers import cutting, finishing, move, packing, pattern, qc, recovery, wash

WORKFLOWS: dict[RequestType, WorkflowDefinition] = {
    module.DEFINITION.request_type: module.DEFINITION
    for module in (move, pattern, cutting, qc, wash, finishing, packing, recovery)
}

for _definition in WORKFLOWS.values():
    _definition.check()
