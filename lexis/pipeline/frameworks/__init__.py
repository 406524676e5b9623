"""Framework adapters, resolved by key."""

from typing import Dict, Optional

from lexis.pipeline.frameworks.base import (
    DEFAULT_FILE_PATTERNS,
    DEFAULT_SOURCE_DIRS,
    DEFAULT_TRANSFORM_RULES,
    FrameworkAdapter,
    TransformRule,
)
from lexis.pipeline.frameworks.nextjs_app_router import (
    NextjsAppRouterAdapter,
    validate_next_app_router,
)

FRAMEWORK_ADAPTERS: Dict[str, FrameworkAdapter] = {
    "nextjs-app-router": NextjsAppRouterAdapter(),
}


def get_adapter(framework_key: str) -> Optional[FrameworkAdapter]:
    """Adapter registered under ``framework_key``, or None."""
    return FRAMEWORK_ADAPTERS.get(framework_key)


def adapter_key_for(name: str, framework_type: Optional[str]) -> str:
    """Registry key for a detected framework (e.g. ``nextjs-app-router``)."""
    if framework_type == "app-router":
        return "nextjs-app-router"
    return f"{name.lower().replace(' ', '-')}-{framework_type}"


__all__ = [
    "DEFAULT_FILE_PATTERNS",
    "DEFAULT_SOURCE_DIRS",
    "DEFAULT_TRANSFORM_RULES",
    "FRAMEWORK_ADAPTERS",
    "FrameworkAdapter",
    "NextjsAppRouterAdapter",
    "TransformRule",
    "adapter_key_for",
    "get_adapter",
    "validate_next_app_router",
]
