"""Definitions module - Workflow schemas and YAML loading."""

from .loader import WorkflowCatalog, load_workflow_file
from .models import LoopCondition, PhaseDefinition, WorkflowDefinition

__all__ = [
	"WorkflowDefinition",
	"PhaseDefinition",
	"LoopCondition",
	"WorkflowCatalog",
	"load_workflow_file",
]
