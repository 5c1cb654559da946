"""
Shared dependencies for the scheduling routes
"""

from ..queue_manager import retry_dispatcher
from ..scheduling.pipeline import HttpPipelineInvoker, PipelineInvoker
from ..scheduling.recovery import Dispatcher


def get_invoker() -> PipelineInvoker:
    return HttpPipelineInvoker()


def get_dispatcher() -> Dispatcher:
    return retry_dispatcher
