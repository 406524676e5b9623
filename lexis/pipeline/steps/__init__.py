"""Pipeline steps, in execution order."""

from typing import Awaitable, Callable, Dict, List

from lexis.pipeline.context import PipelineContext
from lexis.pipeline.steps.clone import clone_step
from lexis.pipeline.steps.commit_push import commit_push_step
from lexis.pipeline.steps.open_pr import open_pr_step
from lexis.pipeline.steps.scan import scan_step
from lexis.pipeline.steps.setup_i18n import setup_i18n_step
from lexis.pipeline.steps.transform import transform_step
from lexis.pipeline.steps.translate import translate_step

Step = Callable[[PipelineContext], Awaitable[None]]

# scaffolding (and the layout/page move) happens before rewriting
STEP_ORDER: List[str] = [
    "clone",
    "scan",
    "setup-i18n",
    "transform",
    "translate",
    "commit-push",
    "open-pr",
]

STEPS: Dict[str, Step] = {
    "clone": clone_step,
    "scan": scan_step,
    "setup-i18n": setup_i18n_step,
    "transform": transform_step,
    "translate": translate_step,
    "commit-push": commit_push_step,
    "open-pr": open_pr_step,
}

__all__ = ["STEPS", "STEP_ORDER", "Step"]
