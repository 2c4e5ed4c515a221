import json
import os
from typing import Any, Dict, Optional

from guidex.logger import get_logger
from guidex.paths import PROMPTS_DIR

logger = get_logger("utils")


def load_prompt(name: str, variables: Optional[Dict[str, Any]] = None) -> str:
    """
    Load a prompt template, with sub-directory support and variable injection.

    Args:
        name: prompt name, may include a sub-directory (e.g. "mentor/system")
        variables: values substituted for {var} placeholders

    Returns:
        The rendered prompt, or "" if the template does not exist.

    Example:
        load_prompt("report_request", {"name": "Ada", "goals": "..."})
    """
    prompt_path = PROMPTS_DIR / f"{name.replace('/', os.sep)}.md"

    if not prompt_path.exists():
        logger.warning("Prompt '%s' not found at %s", name, prompt_path)
        return ""

    template = prompt_path.read_text(encoding="utf-8")

    if variables:
        for key, value in variables.items():
            template = template.replace(f"{{{key}}}", str(value))

    return template.strip()


def parse_llm_json(content: str) -> Optional[Dict[str, Any]]:
    """
    Parse JSON returned by a model.

    Models often wrap JSON in a Markdown code fence; this strips it.

    Args:
        content: raw model output

    Returns:
        The parsed dict, or None when it is not a JSON object.

    Example:
        >>> parse_llm_json('```json\\n{"key": "value"}\\n```')
        {'key': 'value'}
    """
    if not content:
        return None

    if "```json" in content:
        content = content.split("```json")[1].split("```")[0]
    elif "```" in content:
        content = content.split("```")[1].split("```")[0]

    try:
        parsed = json.loads(content.strip())
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
