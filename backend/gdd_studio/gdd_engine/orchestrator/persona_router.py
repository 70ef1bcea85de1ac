"""
persona_router.py
Declarative table of templated completion stages.

Each template fixes the system prompt, the user request, the persona
scaffolding turns injected as assistant messages, how many times the stage
repeats, where each repetition is persisted and how the "subject" (the game
idea fed to the next repetition) is carried forward.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple


ROLES = {
    "designerA": "Game Designer A",
    "designerB": "Game Designer B",
    "gamerC": "Gamer C",
    "criticD": "Game Critic D",
    "gddWriterE": "Game GDD Writer E",
    "managerF": "Project Manager F",
    "artistG": "Concept Artist G",
    "qaAgent": "QA Agent",
}


def last_line(output: str) -> str:
    """
    Narrowing heuristic for the discussion: the next round only sees the
    final line of the previous round's text.
    """
    return output.split("\n")[-1]


def keep_subject(subject: str, output: str) -> str:
    return subject


def carry_last_line(subject: str, output: str) -> str:
    return last_line(output)


@dataclass(frozen=True)
class StageTemplate:
    name: str
    system_prompt: str
    user_prompt: str
    scaffold: Tuple[Tuple[str, str], ...]
    repetitions: int = 1
    artifact: Optional[str] = None
    progress: Optional[str] = None
    carry: Callable[[str, str], str] = keep_subject

    def build_messages(self, subject: str) -> List[Dict[str, str]]:
        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_prompt.format(subject=subject)},
        ]
        for role_key, line in self.scaffold:
            messages.append({"role": "assistant", "content": f"{ROLES[role_key]}: {line}"})
        return messages

    def artifact_name(self, number: int) -> str:
        return self.artifact.format(n=number)

    def progress_text(self, number: int, output: str) -> str:
        return self.progress.format(n=number, output=output, preview=output[:200])


STAGE_TEMPLATES: Dict[str, StageTemplate] = {
    "discussion": StageTemplate(
        name="discussion",
        system_prompt="You are a group of game design professionals discussing a game idea.",
        user_prompt="Discuss and iterate on this game idea: {subject}",
        scaffold=(
            ("designerA", "Let's consider..."),
            ("designerB", "I think we should..."),
            ("gamerC", "From a player's perspective..."),
            ("criticD", "Critically speaking..."),
        ),
        repetitions=5,
        artifact="2_discussion_{n}.txt",
        progress="Round {n}: {output}",
        carry=carry_last_line,
    ),
    "gdd-writing": StageTemplate(
        name="gdd-writing",
        system_prompt="You are a team working on a Game Design Document (GDD).",
        user_prompt="Write or improve the GDD for this game idea: {subject}",
        scaffold=(
            ("gddWriterE", "Let's structure the GDD as follows..."),
            ("designerA", "We should include..."),
            ("designerB", "Don't forget to mention..."),
            ("managerF", "From a project management perspective..."),
        ),
        repetitions=5,
        artifact="3_gdd_iteration_{n}.md",
        progress="Iteration {n}: {preview}...",
    ),
    "concept-art": StageTemplate(
        name="concept-art",
        system_prompt="You are a concept artist creating a prompt for an AI image generator.",
        user_prompt="Create an image prompt for this game: {subject}",
        scaffold=(
            ("artistG", "Here's a prompt for the game's key visual..."),
        ),
    ),
}


def load_template(name: str) -> StageTemplate:
    if name not in STAGE_TEMPLATES:
        raise ValueError(f"Unknown stage template '{name}'")
    return STAGE_TEMPLATES[name]
