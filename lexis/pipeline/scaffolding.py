"""next-intl / Lingo.dev scaffolding files written into the target repository."""

import json
import re
from pathlib import Path
from typing import Any, List

LINGO_SCHEMA_URL = "https://lingo.dev/schema/i18n.json"
LINGO_CONFIG_VERSION = "1.10"

DEFAULT_MIDDLEWARE_MATCHER = r"/((?!_next|.*\\..*).*)"
ADAPTER_MIDDLEWARE_MATCHER = r"/((?!api|_next|_vercel|.*\\..*).*)"

NEXT_CONFIG_TS = """import type { NextConfig } from 'next';
import createNextIntlPlugin from 'next-intl/plugin';

const withNextIntl = createNextIntlPlugin();

const config: NextConfig = {
  reactStrictMode: true
};

export default withNextIntl(config);
"""


def write_json(path: Path, data: Any) -> None:
    """Write pretty JSON (2-space indent, trailing newline), creating parents."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def build_i18n_config(source_locale: str, targets: List[str]) -> dict:
    """Lingo.dev ``i18n.json`` manifest."""
    return {
        "$schema": LINGO_SCHEMA_URL,
        "version": LINGO_CONFIG_VERSION,
        "locale": {
            "source": source_locale,
            "targets": list(targets),
        },
        "buckets": {
            "json": {
                "include": ["messages/[locale].json"],
            },
        },
    }


def render_i18n_lib(source_locale: str, targets: List[str]) -> str:
    locales = ", ".join(f"'{locale}'" for locale in [source_locale, *targets])
    return (
        "import { getRequestConfig } from 'next-intl/server';\n"
        "\n"
        f"export const locales = [{locales}] as const;\n"
        "export type Locale = (typeof locales)[number];\n"
        "\n"
        "export default getRequestConfig(async ({locale}) => ({\n"
        "  messages: (await import(`../messages/${locale}.json`)).default\n"
        "}));\n"
    )


def render_middleware(source_locale: str, matcher: str) -> str:
    return (
        "import createMiddleware from 'next-intl/middleware';\n"
        "import { locales } from './lib/i18n';\n"
        "\n"
        "export default createMiddleware({\n"
        "  locales,\n"
        f"  defaultLocale: '{source_locale}'\n"
        "});\n"
        "\n"
        "export const config = {\n"
        f"  matcher: ['{matcher}']\n"
        "};\n"
    )


def write_base_scaffolding(
    repo_dir: Path, source_locale: str, targets: List[str], matcher: str
) -> None:
    """i18n.json, empty source catalog (if absent), lib/i18n.ts and middleware.ts."""
    write_json(repo_dir / "i18n.json", build_i18n_config(source_locale, targets))

    source_catalog = repo_dir / "messages" / f"{source_locale}.json"
    if not source_catalog.exists():
        write_json(source_catalog, {})

    lib_dir = repo_dir / "lib"
    lib_dir.mkdir(parents=True, exist_ok=True)
    (lib_dir / "i18n.ts").write_text(render_i18n_lib(source_locale, targets), encoding="utf-8")

    (repo_dir / "middleware.ts").write_text(
        render_middleware(source_locale, matcher), encoding="utf-8"
    )


def wrap_layout_with_provider(content: str) -> str:
    """Wrap ``<body>`` children of a root layout in ``NextIntlClientProvider``."""
    if "next-intl" not in content:
        content = (
            "import { NextIntlClientProvider } from 'next-intl';\n"
            "import { getMessages } from 'next-intl/server';\n"
            f"{content}"
        )

    if "<NextIntlClientProvider" in content:
        return content

    # getMessages() is awaited inside the layout
    content = re.sub(
        r"export default function RootLayout",
        "export default async function RootLayout",
        content,
    )
    content = re.sub(
        r"<body([^>]*)>",
        r"<body\1>\n        <NextIntlClientProvider messages={await getMessages()}>",
        content,
        count=1,
    )
    content = re.sub(
        r"</body>",
        "</NextIntlClientProvider>\n      </body>",
        content,
        count=1,
    )
    return content
