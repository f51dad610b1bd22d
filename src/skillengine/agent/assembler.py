"""Collects what ran during a turn into an ``AgentTurnResult``."""

from typing import (
    Any,
    Dict,
    List,
)

from skillengine.core.schema import (
    ActionRecord,
    AgentTurnResult,
    SkillResult,
)


class TurnResultAssembler:
    """Ordered trace of dispatched skills for one turn."""

    def __init__(self) -> None:
        self._actions: List[ActionRecord] = []

    def record(self, skill: str, args: Dict[str, Any], result: SkillResult) -> None:
        self._actions.append(ActionRecord(skill=skill, args=args, result=result))

    @property
    def skills_used(self) -> List[str]:
        return [a.skill for a in self._actions]

    def build(self, response: str, error: str | None = None) -> AgentTurnResult:
        return AgentTurnResult(
            response=response,
            skills_used=self.skills_used,
            actions=list(self._actions),
            error=error,
        )
