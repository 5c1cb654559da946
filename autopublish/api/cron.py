"""
Scheduler trigger endpoints, called hourly by an external cron with CRON_SECRET
"""

import logging
from fastapi import APIRouter, Depends

from ..auth.deps import require_cron_secret
from ..schemas.scheduling import BatchResultOut, RecoveryResultOut
from ..scheduling.pipeline import PipelineInvoker
from ..scheduling.recovery import Dispatcher
from ..scheduling.runner import PublishRunner, run_recovery
from .deps import get_dispatcher, get_invoker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(require_cron_secret)])


# sync handlers; FastAPI runs them in its threadpool
@router.api_route("/publish", methods=["GET", "POST"], response_model=BatchResultOut)
def cron_publish(invoker: PipelineInvoker = Depends(get_invoker)):
    """Create and run today's job for every tenant whose local slot is now."""
    return PublishRunner(invoker).run_due().to_dict()


@router.api_route("/recover", methods=["GET", "POST"], response_model=RecoveryResultOut)
def cron_recover(dispatcher: Dispatcher = Depends(get_dispatcher)):
    """Sweep stuck jobs and assets."""
    return run_recovery(dispatcher)
