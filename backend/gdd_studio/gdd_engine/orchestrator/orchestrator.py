"""
orchestrator.py
Five-stage GDD pipeline:
- Base idea -> discussion (5 rounds) -> GDD writing (5 iterations)
  -> concept art -> finalization
- Each stage is followed by a QA pass against the *original* idea
- Every stage output is persisted to the run folder before its QA runs
- Progress is reported as events yielded from GDDOrchestrator.run()

There is deliberately no error handling here: a failed model call ends the
generator, leaves the files written so far and never yields a result event.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple

from gdd_studio.llm_client import TokenUsage
from gdd_studio.gdd_engine.progress import progress_event, result_event
from gdd_studio.gdd_engine.renderer import render_html
from gdd_studio.gdd_engine.run_store import RunFolder, RunStore
from .persona_router import StageTemplate, load_template
from .qa_reviewer import QAReviewer

logger = logging.getLogger(__name__)


FINAL_GDD_TEMPLATE = "# Game Design Document\n\n{gdd}\n\n## Concept Art\n\n![Concept Art]({art_url})"


@dataclass(frozen=True)
class QACheck:
    label: str
    step: str
    file_name: str
    result_key: str
    subject: str  # RunContext attribute holding the text under review


@dataclass(frozen=True)
class Stage:
    number: int
    title: str
    handler: Callable[["GDDOrchestrator", "RunContext"], AsyncIterator[Dict[str, Any]]]
    qa: Optional[QACheck] = None


@dataclass
class RunContext:
    """Everything one run carries between stages. Discarded when the run ends."""

    base_idea: str
    folder: RunFolder
    usage: TokenUsage = field(default_factory=TokenUsage)
    game_idea: str = ""
    gdd: str = ""
    art_prompt: str = ""
    art_url: str = ""
    final_gdd: str = ""
    html_gdd: str = ""
    outputs: Dict[str, str] = field(default_factory=dict)
    qa_results: Dict[str, str] = field(default_factory=dict)


class GDDOrchestrator:
    """
    Drives the stage list in order. Construct with an LLM client exposing
    complete(messages, usage) / generate_image(prompt, usage) and a RunStore.
    """

    def __init__(self, llm, run_store: RunStore, reviewer: Optional[QAReviewer] = None):
        self.llm = llm
        self.run_store = run_store
        self.reviewer = reviewer or QAReviewer(llm)

    # ---------------------------
    # Pipeline run
    # ---------------------------
    async def run(self, base_idea: str) -> AsyncIterator[Dict[str, Any]]:
        ctx = RunContext(
            base_idea=base_idea,
            folder=self.run_store.create_run(base_idea),
            game_idea=base_idea,
        )
        logger.info("Starting GDD generation process...")

        for stage in STAGES:
            logger.info("Step %d: %s - Start", stage.number, stage.title)
            async for event in stage.handler(self, ctx):
                yield event
            if stage.qa is not None:
                async for event in self._qa_pass(stage.qa, ctx):
                    yield event
            logger.info("Step %d: %s - End", stage.number, stage.title)

        token_usage = ctx.usage.summary()
        logger.info("Token Usage:\n%s", token_usage)
        ctx.folder.write("token_usage.txt", token_usage)

        yield result_event(
            folderPath=str(ctx.folder.path),
            finalGdd=ctx.html_gdd,
            tokenUsage=token_usage,
            qaResults=dict(ctx.qa_results),
        )
        logger.info("GDD generation process completed.")

    async def _qa_pass(self, qa: QACheck, ctx: RunContext):
        verdict = await self.reviewer.review(
            qa.label, getattr(ctx, qa.subject), ctx.base_idea, ctx.usage
        )
        ctx.qa_results[qa.result_key] = verdict
        yield progress_event(qa.step, verdict)
        ctx.folder.write(qa.file_name, verdict)

    # ---------------------------
    # Generic templated stage
    # ---------------------------
    async def run_templated_stage(self, template: StageTemplate, ctx: RunContext, unit: str = ""):
        """
        Repeat one template against ctx.game_idea. Each repetition is reported
        and persisted when the template names a progress format / artifact,
        then the template's carry policy decides the next subject.
        The last repetition's text lands in ctx.outputs[template.name].
        """
        output = ""
        for number in range(1, template.repetitions + 1):
            if unit:
                logger.info("%s %d - Start", unit, number)
            output = await self.llm.complete(template.build_messages(ctx.game_idea), ctx.usage)
            if template.progress:
                yield progress_event(template.name, template.progress_text(number, output))
            if template.artifact:
                ctx.folder.write(template.artifact_name(number), output)
            ctx.game_idea = template.carry(ctx.game_idea, output)
            if unit:
                logger.info("%s %d - End", unit, number)
        ctx.outputs[template.name] = output

    # ---------------------------
    # Stage handlers
    # ---------------------------
    async def _base_idea(self, ctx: RunContext):
        yield progress_event("base-idea", ctx.base_idea)
        ctx.folder.write("1_base_idea.txt", ctx.base_idea)

    async def _discussion(self, ctx: RunContext):
        yield progress_event("discussion", "Starting discussion...")
        async for event in self.run_templated_stage(load_template("discussion"), ctx, "Discussion Round"):
            yield event

    async def _gdd_writing(self, ctx: RunContext):
        yield progress_event("gdd-writing", "Starting GDD writing...")
        template = load_template("gdd-writing")
        async for event in self.run_templated_stage(template, ctx, "GDD Writing Iteration"):
            yield event
        ctx.gdd = ctx.outputs[template.name]

    async def _concept_art(self, ctx: RunContext):
        yield progress_event("concept-art", "Generating concept art...")
        template = load_template("concept-art")
        async for event in self.run_templated_stage(template, ctx):
            yield event
        ctx.art_prompt = ctx.outputs[template.name]
        ctx.art_url = await self.llm.generate_image(ctx.art_prompt, ctx.usage)
        yield progress_event("concept-art", f"Art prompt: {ctx.art_prompt}\nArt URL: {ctx.art_url}")
        ctx.folder.write("4_concept_art_prompt.txt", ctx.art_prompt)
        ctx.folder.write("4_concept_art_url.txt", ctx.art_url)

    async def _finalize(self, ctx: RunContext):
        yield progress_event("final-gdd", "Finalizing GDD...")
        ctx.final_gdd = build_final_gdd(ctx.gdd, ctx.art_url)
        ctx.folder.write("5_final_gdd.md", ctx.final_gdd)
        ctx.html_gdd = render_html(ctx.final_gdd)
        ctx.folder.write("5_final_gdd.html", ctx.html_gdd)


def build_final_gdd(gdd: str, art_url: str) -> str:
    return FINAL_GDD_TEMPLATE.format(gdd=gdd, art_url=art_url)


STAGES: Tuple[Stage, ...] = (
    Stage(1, "Base Idea", GDDOrchestrator._base_idea,
          QACheck("Base Idea", "base-idea-qa", "1_base_idea_qa.txt", "baseIdeaQA", "base_idea")),
    Stage(2, "Discussion", GDDOrchestrator._discussion,
          QACheck("Discussion", "discussion-qa", "2_discussion_qa.txt", "discussionQA", "game_idea")),
    Stage(3, "GDD Writing", GDDOrchestrator._gdd_writing,
          QACheck("GDD Writing", "gdd-writing-qa", "3_gdd_qa.txt", "gddQA", "gdd")),
    Stage(4, "Concept Art", GDDOrchestrator._concept_art,
          QACheck("Concept Art", "concept-art-qa", "4_concept_art_qa.txt", "artQA", "art_prompt")),
    Stage(5, "Finalizing GDD", GDDOrchestrator._finalize,
          QACheck("Final GDD", "final-gdd-qa", "5_final_gdd_qa.txt", "finalGddQA", "final_gdd")),
)
