"""Feedback Writer - streams the coaching feedback document from Claude."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from resume_optimizer.clients.llm_client import DEFAULT_MODEL, LLMClient
from resume_optimizer.errors import InputValidationError
from resume_optimizer.models.sections import SectionName

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are an expert career coach and professional resume writer with more than 20 years \
of experience helping candidates land roles at top companies. You give actionable, \
specific and constructive feedback. Be encouraging but direct.

Always answer in Markdown and always use the exact section headings you are given, \
in the order given, each on its own line starting with "### "."""

TAILORING_WITH_REQUIREMENTS = """\
This is the most critical section. Show concretely how to tailor the language and \
content of the resume to the target position requirements. Name the specific \
keywords from the requirements that should appear throughout the resume, point out \
gaps between the resume and the requirements, and suggest how to address each one."""

TAILORING_GENERAL = """\
Give general advice on tailoring a resume for a target role: why keywords from the \
job description matter, how to align the summary and experience sections with an \
employer's needs, and an example of customising the resume for a hypothetical \
posting."""

REFINED_COPY_TAILORING = """\

When rewriting, tailor the resume to the target position:
1. Identify the five most important requirements of the position.
2. Reframe existing experience and achievements to show how each one is met, with metrics where the original has them.
3. Open with a professional summary that uses the posting's exact keywords for the 3-5 most critical requirements.
4. Reorder experience bullets so the most relevant achievements lead.
5. List skills in order of relevance, featuring every required tool the candidate actually has.
6. Where a requirement is not met directly, surface transferable or adjacent experience.
7. Mirror the posting's terminology so the resume passes ATS screening."""


def build_prompt(resume: str, goals: str, requirements: str = "") -> str:
    """Assemble the analysis prompt; the four wizard headings are a fixed contract."""
    has_requirements = bool(requirements and requirements.strip())
    target = " and the requirements of their target position" if has_requirements else ""

    parts = [
        f"Analyze the user's resume and career goals{target}, then give detailed "
        "recommendations to improve the resume for that goal.",
        "",
        "**User's Current Resume:**",
        "---",
        resume.strip(),
        "---",
        "",
        "**User's Career Goals:**",
        "---",
        goals.strip(),
        "---",
    ]
    if has_requirements:
        parts += [
            "",
            "**Target Position Requirements:**",
            "---",
            requirements.strip(),
            "---",
        ]

    parts += [
        "",
        "Structure the feedback in these sections:",
        "",
        f"### {SectionName.SUMMARY.value}",
        "A short, high-level teaser. Highlight 1-2 strengths, then name 2-3 specific, "
        "high-impact gaps (for example missing quantified achievements, weak ATS keyword "
        "coverage, an untailored summary). Follow with 2-3 concrete action items the user "
        "can apply right now, and say that step-by-step fixes, rewritten examples and a "
        "fully revised resume are in the full analysis.",
        "",
        f"### {SectionName.BREAKDOWN.value}",
        "Bullet-pointed feedback for each major resume section (Summary/Objective, "
        "Experience, Skills, Education/Certifications). Explain why each change helps "
        "and give an improved example. Rephrase experience bullets with the STAR method "
        "and quantify results.",
        "",
        "### Tailoring for the Target Role",
        TAILORING_WITH_REQUIREMENTS if has_requirements else TAILORING_GENERAL,
        "",
        "### Final Polish",
        "Formatting, grammar and presentation tips, including consistent tense and layout.",
        "",
        "---",
        f"### {SectionName.REFINED_COPY.value}",
        "A complete rewritten resume applying all recommendations, as clean Markdown "
        "inside a single ```markdown fenced code block."
        + (REFINED_COPY_TAILORING if has_requirements else ""),
        "",
        "---",
        f"### {SectionName.COVER_LETTER.value}",
        "A concise, professional 3-4 paragraph cover letter built from the resume and "
        "job details, addressed to \"Hiring Manager\" when no contact is known, ending "
        "with a clear call to action. Put it inside a single ```markdown fenced code block.",
    ]
    return "\n".join(parts)


def validate_inputs(resume: str, goals: str) -> None:
    if not (resume and resume.strip()) or not (goals and goals.strip()):
        raise InputValidationError("Resume and goals are required")


class FeedbackWriter:
    """Generates the full feedback document straight from the Anthropic API."""

    def __init__(
        self,
        llm: LLMClient,
        model: str = DEFAULT_MODEL,
        *,
        temperature: float = 0.4,
        max_tokens: int = 16000,
    ):
        self.llm = llm
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def stream(
        self,
        resume: str,
        goals: str,
        requirements: str = "",
    ) -> AsyncIterator[str]:
        """Yield feedback text deltas in generation order."""
        validate_inputs(resume, goals)
        logger.info("Generating feedback (requirements=%s)", bool(requirements.strip()))
        async for chunk in self.llm.stream(
            prompt=build_prompt(resume, goals, requirements),
            system=SYSTEM_PROMPT,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        ):
            yield chunk

    async def write(self, resume: str, goals: str, requirements: str = "") -> str:
        """Return the complete feedback document in one call."""
        validate_inputs(resume, goals)
        response = await self.llm.generate(
            prompt=build_prompt(resume, goals, requirements),
            system=SYSTEM_PROMPT,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.text
