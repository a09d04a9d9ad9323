"""Prompt template views: grouping by type and picking the active version.

The backend keeps every version of a template. Listings show them grouped
by PromptType, newest version first, with the active one marked.
"""

import logging
from collections import defaultdict

from workbench.core.schemas import PromptTemplate, PromptType

logger = logging.getLogger(__name__)


def group_by_type(templates: list[PromptTemplate]) -> dict[PromptType, list[PromptTemplate]]:
    """Group templates by type, newest version first.

    Every PromptType gets a key, empty when it has no templates. Ties on
    version are broken by id so the order does not depend on input order.
    """
    groups: dict[PromptType, list[PromptTemplate]] = defaultdict(list)
    for template in templates:
        groups[template.prompt_type].append(template)
    return {
        prompt_type: sorted(groups[prompt_type], key=lambda t: (-t.version, -t.id))
        for prompt_type in PromptType
    }


def active_prompt(
    templates: list[PromptTemplate],
    prompt_type: PromptType,
) -> PromptTemplate | None:
    """Return the active template of ``prompt_type``, or None if none is active.

    If the backend reports several active versions, the newest wins.
    """
    active = [t for t in group_by_type(templates)[prompt_type] if t.is_active]
    if len(active) > 1:
        logger.warning(
            "%d active %s prompts, using v%d",
            len(active), prompt_type.value, active[0].version,
        )
    return active[0] if active else None
