# backend/gdd_studio/gdd_engine/orchestrator/qa_reviewer.py
import logging

from gdd_studio.llm_client import TokenUsage

logger = logging.getLogger(__name__)


class QAReviewer:
    """
    Reviews one step's output against the original game idea.
    The verdict is advisory free text; nothing downstream parses it.
    """

    SYSTEM_PROMPT = "You are a meticulous QA agent for game design documents."

    PROMPT_TEMPLATE = """
    As a QA Agent, review the output of the "{step}" step:

    Original Input: {original_input}
    Step Output: {output}

    Ensure that the output aligns with the original input and meets the following criteria:
    1. Relevance to the original game idea
    2. Completeness of the step's objectives
    3. Consistency with previous steps (if applicable)
    4. Clarity and coherence of the content

    If any issues are found, provide specific feedback. If no issues are found, confirm that the step output is satisfactory.
    """

    def __init__(self, llm):
        self.llm = llm

    def build_messages(self, step: str, output: str, original_input: str):
        prompt = self.PROMPT_TEMPLATE.format(
            step=step,
            output=output,
            original_input=original_input,
        )
        return [
            {"role": "system", "content": self.SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    async def review(self, step: str, output: str, original_input: str, usage: TokenUsage) -> str:
        logger.info("QA Phase for %s - Start", step)
        verdict = await self.llm.complete(self.build_messages(step, output, original_input), usage)
        logger.info("QA Phase for %s - End", step)
        return verdict
