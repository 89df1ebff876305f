"""Prompt template rendering for directory summaries."""

from __future__ import annotations

from string import Template
from typing import Iterable

from glance.config.defaults import CHARS_PER_TOKEN

DEFAULT_PROMPT_TEMPLATE = """\
you are an expert code reviewer and technical writer. generate a descriptive \
technical overview of this directory:
- highlight purpose, architecture, and key file roles
- mention important dependencies or gotchas
- do NOT provide recommendations or next steps

directory: ${directory}

subdirectory summaries:
${sub_glances}

local file contents:
${file_contents}
"""


def estimate_tokens(text: str) -> int:
    """Character-based token estimate for providers with no counting API."""
    return len(text) // CHARS_PER_TOKEN


def format_file_contents(files: Iterable[tuple[str, str]]) -> str:
    """Join (name, content) pairs into the block embedded in the prompt."""
    return "".join(f"=== file: {name} ===\n{content}\n\n" for name, content in files)


def render_prompt(
    template: str,
    directory: str,
    sub_glances: str,
    file_contents: str,
) -> str:
    """
    Fill the template placeholders.

    Unknown ``$`` placeholders are left untouched so that user templates can
    contain literal dollar signs.
    """
    return Template(template).safe_substitute(
        directory=directory,
        sub_glances=sub_glances,
        file_contents=file_contents,
    )
