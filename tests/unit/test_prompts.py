"""Tests for prompt template grouping and active-version lookup."""

import pytest

from workbench.core.schemas import PromptTemplate, PromptType
from workbench.pipeline.prompts import active_prompt, group_by_type


def _template(
    prompt_id: int,
    version: int,
    prompt_type: PromptType = PromptType.QUESTION_GENERATION,
    *,
    active: bool = False,
) -> PromptTemplate:
    return PromptTemplate(
        id=prompt_id,
        prompt_type=prompt_type,
        version=version,
        name=f"v{version}",
        content="...",
        is_active=active,
    )


class TestGroupByType:
    def test_every_type_present(self) -> None:
        groups = group_by_type([])
        assert list(groups) == list(PromptType)
        assert all(group == [] for group in groups.values())

    def test_newest_version_first(self) -> None:
        templates = [
            _template(1, 1),
            _template(2, 3),
            _template(3, 1, PromptType.EVALUATION),
            _template(4, 2),
        ]
        groups = group_by_type(templates)
        assert [t.version for t in groups[PromptType.QUESTION_GENERATION]] == [3, 2, 1]
        assert [t.id for t in groups[PromptType.EVALUATION]] == [3]

    def test_order_independent(self) -> None:
        templates = [_template(1, 2), _template(2, 2), _template(3, 1)]
        assert group_by_type(templates) == group_by_type(list(reversed(templates)))


class TestActivePrompt:
    def test_active_per_type(self) -> None:
        templates = [
            _template(1, 1, active=True),
            _template(2, 2),
            _template(3, 1, PromptType.EVALUATION),
        ]
        active = active_prompt(templates, PromptType.QUESTION_GENERATION)
        assert active is not None
        assert active.id == 1
        assert active_prompt(templates, PromptType.EVALUATION) is None

    def test_several_active_newest_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        templates = [_template(1, 1, active=True), _template(2, 4, active=True)]
        active = active_prompt(templates, PromptType.QUESTION_GENERATION)
        assert active is not None
        assert active.version == 4
        assert "2 active QUESTION_GENERATION prompts" in caplog.text
