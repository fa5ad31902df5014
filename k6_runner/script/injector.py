"""Summary hook injection for k6 test scripts.

An augmented script is the composition of three parts:

    preamble (imports) + original script + handleSummary hook

The hook is recognized by a single marker. Scripts that already contain
the marker are returned untouched, so injection is idempotent. Detection
is textual: a marker inside a comment or string literal also counts.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Union

HOOK_MARKER = "export function handleSummary"

HTML_REPORT_IMPORT = (
    'import { htmlReport } from '
    '"https://raw.githubusercontent.com/benc-uk/k6-reporter/main/dist/bundle.js";'
)
TEXT_SUMMARY_IMPORT = (
    'import { textSummary } from "https://jslib.k6.io/k6-summary/0.0.1/index.js";'
)
PREAMBLE_IMPORTS = (HTML_REPORT_IMPORT, TEXT_SUMMARY_IMPORT)

_HOOK_TEMPLATE = """{marker}(data) {{
    return {{
        {html_path}: htmlReport(data),
        stdout: textSummary(data, {{ indent: " ", enableColors: true }}),
    }};
}}
"""


@dataclass(frozen=True)
class ScriptAugmentation:
    """The parts of an augmented script."""
    preamble: str
    original: str
    hook: str

    def render(self) -> str:
        parts = []
        if self.preamble:
            parts.append(self.preamble)
        parts.append(self.original.rstrip("\n") + "\n")
        if self.hook:
            parts.append(self.hook)
        return "\n".join(parts)


def has_summary_hook(content: str) -> bool:
    """Whether the script already declares a summary hook."""
    return HOOK_MARKER in content


def build_hook(html_path: Union[str, Path]) -> str:
    """Render the handleSummary function for one run's HTML artifact."""
    return _HOOK_TEMPLATE.format(
        marker=HOOK_MARKER,
        html_path=json.dumps(str(html_path)),
    )


def build_preamble(content: str) -> str:
    """Import declarations the hook needs and the script lacks."""
    missing = [line for line in PREAMBLE_IMPORTS if line not in content]
    if not missing:
        return ""
    return "\n".join(missing) + "\n"


def plan_augmentation(content: str, html_path: Union[str, Path]) -> ScriptAugmentation:
    """Split the augmentation of ``content`` into its three parts.

    Args:
        content: Original script text.
        html_path: Where the hook writes the rendered report.

    Returns:
        ScriptAugmentation. Preamble and hook are empty when the script
        already has a hook.
    """
    if has_summary_hook(content):
        return ScriptAugmentation(preamble="", original=content, hook="")
    return ScriptAugmentation(
        preamble=build_preamble(content),
        original=content,
        hook=build_hook(html_path),
    )


def inject_summary_hook(content: str, html_path: Union[str, Path]) -> str:
    """Return ``content`` with exactly one handleSummary hook registered.

    Args:
        content: Original script text.
        html_path: Where the hook writes the rendered report.

    Returns:
        Augmented script text, or ``content`` itself if it already has a hook.
    """
    augmentation = plan_augmentation(content, html_path)
    if not augmentation.hook:
        return content
    return augmentation.render()
