"""Short per-step summaries rendered from a job's log stream."""

import math
from typing import Any, Callable, Dict, Optional

from lexis.models.job import Job, JobStatus

Summarizer = Callable[[Job, Dict[str, Any]], Optional[str]]


def _last_data(job: Job, step: str) -> Dict[str, Any]:
    for entry in reversed(job.logs_for_step(step)):
        if entry.data is not None:
            return entry.data
    return {}


def _clone(job: Job, data: Dict[str, Any]) -> Optional[str]:
    return "Cloned" if data.get("repoPath") is not None else None


def _scan(job: Job, data: Dict[str, Any]) -> Optional[str]:
    files, strings = data.get("filesWithStrings"), data.get("totalStrings")
    if files is None or strings is None:
        return None
    return f"{files} files, {strings} strings"


def _setup_i18n(job: Job, data: Dict[str, Any]) -> Optional[str]:
    locales = data.get("localesAdded")
    if isinstance(locales, list) and locales:
        return f"Locales: {', '.join(locales)}"
    return None


def _transform(job: Job, data: Dict[str, Any]) -> Optional[str]:
    completed, total = data.get("completedFiles"), data.get("totalFiles")
    if completed is not None and isinstance(total, int) and total > 0:
        # half-up, matching the dashboard's rounding
        pct = math.floor(int(completed) / total * 100 + 0.5)
        extracted = data.get("stringsExtracted")
        suffix = f", {extracted} strings" if extracted is not None else ""
        return f"{completed}/{total} files ({pct}%){suffix}"
    if job.status == JobStatus.COMPLETED:
        return f"{job.stats.files_modified} files, {job.stats.strings_found} strings"
    return None


def _translate(job: Job, data: Dict[str, Any]) -> Optional[str]:
    count = data.get("languagesCount")
    return f"{count} languages" if count is not None else None


def _commit_push(job: Job, data: Dict[str, Any]) -> Optional[str]:
    branch = data.get("branch")
    return f"Branch: {branch}" if branch is not None else None


def _open_pr(job: Job, data: Dict[str, Any]) -> Optional[str]:
    return "PR opened" if data.get("prUrl") is not None else None


SUMMARIZERS: Dict[str, Summarizer] = {
    "clone": _clone,
    "scan": _scan,
    "setup-i18n": _setup_i18n,
    "transform": _transform,
    "translate": _translate,
    "commit-push": _commit_push,
    "open-pr": _open_pr,
}


def get_step_summary(job: Job, step: str) -> Optional[str]:
    """
    Short human-readable summary for ``step``, e.g. "12 files, 47 strings".

    Uses the ``data`` payload of the step's most recent log entry that has one.
    Returns None for unknown steps or when nothing useful was logged yet.
    """
    summarize = SUMMARIZERS.get(step)
    if summarize is None:
        return None
    return summarize(job, _last_data(job, step))
