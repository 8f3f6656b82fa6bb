"""Markdown prompt files: YAML frontmatter for model settings, a Jinja2 body
split into chat messages by ``system:`` / ``user:`` marker lines."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List

import frontmatter
import yaml
from jinja2 import Environment, TemplateError

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

_ROLE_LINE = re.compile(r"^[ \t]*(system|user):[ \t]*$", re.MULTILINE)

_env = Environment(keep_trailing_newline=True, autoescape=False)


def load_prompt(prompt_name: str, **variables: Any) -> Dict[str, Any]:
    """Render ``<PROMPTS_DIR>/<prompt_name>.md``.

    Returns ``{"config": <frontmatter dict>, "messages": [{"role", "content"}, ...]}``.
    Raises FileNotFoundError for an unknown prompt and ValueError when the
    file cannot be parsed or rendered.
    """
    path = PROMPTS_DIR / f"{prompt_name}.md"
    if not path.is_file():
        raise FileNotFoundError(f"No prompt named {prompt_name!r} in {PROMPTS_DIR}")

    try:
        post = frontmatter.loads(path.read_text(encoding="utf-8"))
        body = _env.from_string(post.content).render(**variables)
    except (TemplateError, yaml.YAMLError, ValueError) as e:
        raise ValueError(f"Prompt {prompt_name!r} is not usable: {e}") from e

    messages = _parse_messages(body)
    logger.debug("Rendered prompt %s into %d messages", prompt_name, len(messages))
    return {"config": dict(post.metadata), "messages": messages}


def _parse_messages(content: str) -> List[Dict[str, str]]:
    # re.split with a capture group yields [preamble, role, text, role, text, ...]
    parts = _ROLE_LINE.split(content)
    messages = [
        {"role": role, "content": text.strip()}
        for role, text in zip(parts[1::2], parts[2::2])
        if text.strip()
    ]
    if not messages:
        raise ValueError("Prompt has no 'system:' or 'user:' sections")
    return messages
