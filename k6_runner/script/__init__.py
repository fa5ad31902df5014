"""Script module - hook injection and built-in scenarios."""

from .injector import (
    HOOK_MARKER,
    ScriptAugmentation,
    has_summary_hook,
    inject_summary_hook,
    plan_augmentation,
)
from .templates import TEMPLATES, TestTemplate, engine_overrides, get_template

__all__ = [
    "HOOK_MARKER",
    "ScriptAugmentation",
    "has_summary_hook",
    "inject_summary_hook",
    "plan_augmentation",
    "TEMPLATES",
    "TestTemplate",
    "engine_overrides",
    "get_template",
]
