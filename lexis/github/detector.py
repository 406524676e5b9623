"""Framework detection from a repository's package.json and root layout."""

import json
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from lexis.core.logging import get_logger
from lexis.github.client import GitHubAPIError, GitHubClient
from lexis.models.schemas import DetectedFramework, FrameworkSupport

logger = get_logger(__name__)


@dataclass(frozen=True)
class RepoStructure:
    has_app_dir: bool = False
    has_pages_dir: bool = False
    has_src_dir: bool = False


Detector = Callable[[Dict[str, str], RepoStructure], Optional[DetectedFramework]]


def _dependencies(pkg: dict) -> Dict[str, str]:
    return {**(pkg.get("dependencies") or {}), **(pkg.get("devDependencies") or {})}


def _coming_soon(name: str, version: Optional[str], framework_type: str) -> DetectedFramework:
    return DetectedFramework(
        name=name,
        version=version,
        type=framework_type,
        supported=False,
        support_level="coming-soon",
    )


def detect_nextjs(deps: Dict[str, str], structure: RepoStructure) -> Optional[DetectedFramework]:
    if "next" not in deps:
        return None

    is_app_router = structure.has_app_dir
    is_pages_router = structure.has_pages_dir and not structure.has_app_dir
    if is_app_router:
        framework_type = "app-router"
    elif is_pages_router:
        framework_type = "pages-router"
    else:
        framework_type = "unknown"

    return DetectedFramework(
        name="Next.js",
        version=deps["next"],
        type=framework_type,
        supported=is_app_router,
        support_level="full" if is_app_router else "coming-soon",
        icon="nextjs",
    )


def detect_react(deps: Dict[str, str], structure: RepoStructure) -> Optional[DetectedFramework]:
    if "react" not in deps:
        return None
    # Next.js app-router already implies React
    if "next" in deps and structure.has_app_dir:
        return None

    if "@remix-run/react" in deps:
        return _coming_soon("Remix", deps["@remix-run/react"], "remix")
    if "vite" in deps or "@vitejs/plugin-react" in deps:
        return _coming_soon("React + Vite", deps["react"], "vite")
    if "react-scripts" in deps:
        return _coming_soon("React (CRA)", deps["react"], "cra")

    return DetectedFramework(
        name="React",
        version=deps["react"],
        type="unknown",
        supported=False,
        support_level="not-supported",
    )


def detect_vue(deps: Dict[str, str], structure: RepoStructure) -> Optional[DetectedFramework]:
    if "nuxt" in deps:
        return _coming_soon("Nuxt", deps["nuxt"], "nuxt3")
    if "vue" in deps:
        return _coming_soon("Vue", deps["vue"], "vue")
    return None


def detect_angular(deps: Dict[str, str], structure: RepoStructure) -> Optional[DetectedFramework]:
    if "@angular/core" not in deps:
        return None
    return _coming_soon("Angular", deps["@angular/core"], "angular")


def detect_svelte(deps: Dict[str, str], structure: RepoStructure) -> Optional[DetectedFramework]:
    if "@sveltejs/kit" in deps:
        return _coming_soon("SvelteKit", deps["@sveltejs/kit"], "sveltekit")
    if "svelte" in deps:
        return _coming_soon("Svelte", deps["svelte"], "svelte")
    return None


def detect_astro(deps: Dict[str, str], structure: RepoStructure) -> Optional[DetectedFramework]:
    if "astro" not in deps:
        return None
    return _coming_soon("Astro", deps["astro"], "astro")


FRAMEWORK_DETECTORS: List[Detector] = [
    detect_nextjs,
    detect_react,
    detect_vue,
    detect_angular,
    detect_svelte,
    detect_astro,
]


def run_detectors(pkg: dict, structure: RepoStructure) -> List[DetectedFramework]:
    deps = _dependencies(pkg)
    frameworks = []
    for detector in FRAMEWORK_DETECTORS:
        detected = detector(deps, structure)
        if detected:
            frameworks.append(detected)
    return frameworks


async def detect_frameworks(github: GitHubClient, owner: str, repo: str) -> List[DetectedFramework]:
    """
    Detect frameworks used by a GitHub repository.

    Args:
        github: API client
        owner: Repository owner
        repo: Repository name

    Returns:
        Detected frameworks (empty when package.json is missing)

    Raises:
        GitHubAPIError: If the contents API fails for reasons other than a 404
    """
    try:
        pkg_text = await github.get_file_text(owner, repo, "package.json")
    except GitHubAPIError as e:
        if e.status_code == 404:
            logger.info("No package.json found", repo=f"{owner}/{repo}")
            return []
        raise

    if not pkg_text:
        return []
    try:
        pkg = json.loads(pkg_text)
    except json.JSONDecodeError:
        logger.warning("package.json is not valid JSON", repo=f"{owner}/{repo}")
        return []

    root = await github.get_content(owner, repo, "")
    entries = root if isinstance(root, list) else []
    dirs = {entry.get("name") for entry in entries if entry.get("type") == "dir"}
    structure = RepoStructure(
        has_app_dir="app" in dirs,
        has_pages_dir="pages" in dirs,
        has_src_dir="src" in dirs,
    )

    frameworks = run_detectors(pkg, structure)
    logger.info(
        "Detected frameworks",
        repo=f"{owner}/{repo}",
        frameworks=[framework.name for framework in frameworks],
    )
    return frameworks


def get_framework_support(framework: DetectedFramework) -> FrameworkSupport:
    """Whether a job for ``framework`` can proceed, with a user-facing reason if not."""
    if framework.support_level == "full":
        return FrameworkSupport(framework=framework, can_proceed=True)

    if framework.support_level == "coming-soon":
        return FrameworkSupport(
            framework=framework,
            can_proceed=False,
            message=(
                f"{framework.name} support is coming soon! "
                "Currently only Next.js App Router is supported."
            ),
        )

    return FrameworkSupport(
        framework=framework,
        can_proceed=False,
        message=(
            f"{framework.name} is not currently supported. "
            "Only Next.js App Router projects are supported."
        ),
    )
