"""Seed the five-module curriculum.

Run with ``python -m promptlab.database.seed``. Modules whose ``order_index``
already exists are left untouched, so the script can be re-run safely.
"""

import asyncio
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promptlab.config.logging import setup_logging
from promptlab.config.settings import get_settings
from promptlab.modules.models import Module, Scenario, SocraticQuestionTemplate

from .engine import create_app_engine
from .init import init_database
from .session import create_session_maker


logger = logging.getLogger(__name__)

CURRICULUM: list[dict[str, Any]] = [
    {
        "order_index": 1,
        "title": "Clear Instructions",
        "description": "Say exactly what you want: the task, the audience and the constraints.",
        "techniques": ["clear_instructions", "constraints"],
        "policy_context": "Administrative notices must be accurate and easy for citizens to follow.",
        "questions": [
            ("exploration", "Think of a time an AI gave you an unhelpful answer. What did you ask it?"),
            ("clarification", "What exactly was missing from that request?"),
            ("assumption", "What did you assume the AI already knew about your situation?"),
            ("consequence", "If you had named the audience and the length, how might the answer have changed?"),
            ("reflection", "What would you put first in your next request?"),
        ],
        "scenarios": [
            {
                "title": "Public notice draft",
                "category": "communication",
                "context": "Draft a notice announcing new opening hours of the city library.",
            },
        ],
    },
    {
        "order_index": 2,
        "title": "Context Setting",
        "description": "Give the model the background, goal and examples it cannot guess.",
        "techniques": ["context_setting", "few_shot_examples"],
        "policy_context": "Policy briefs depend on local facts the model has never seen.",
        "questions": [
            ("exploration", "What background does a new colleague need before writing a report for you?"),
            ("assumption", "Which of those facts do you usually leave out when prompting an AI?"),
            ("clarification", "How would an example of a good answer help the model?"),
            ("consequence", "What happens when the context you give is outdated or wrong?"),
            ("reflection", "How will you decide how much context is enough?"),
        ],
        "scenarios": [
            {
                "title": "Budget briefing",
                "category": "analysis",
                "context": "Summarize last year's park maintenance budget for a council briefing.",
            },
        ],
    },
    {
        "order_index": 3,
        "title": "Role Prompting",
        "description": "Assign the model a persona or expertise and see how its answers change.",
        "techniques": ["role_prompting"],
        "policy_context": "Different stakeholders expect different tones and levels of detail.",
        "questions": [
            ("exploration", "How does a lawyer explain a rule differently from a teacher?"),
            ("clarification", "What changes when you tell the AI who it is supposed to be?"),
            ("assumption", "Does giving the AI an expert role make its facts more reliable?"),
            ("consequence", "When could a role make the answer worse?"),
            ("reflection", "Which role would you choose for your own work, and why?"),
        ],
        "scenarios": [
            {
                "title": "Citizen FAQ",
                "category": "communication",
                "context": "Answer residents' questions about recycling rules as a friendly city clerk.",
            },
        ],
    },
    {
        "order_index": 4,
        "title": "Output Formatting",
        "description": "Specify lists, tables, length or JSON so results are usable without rework.",
        "techniques": ["output_formatting", "structured_output"],
        "policy_context": "Reports are pasted into fixed templates and spreadsheets.",
        "questions": [
            ("exploration", "How much time do you spend reformatting what an AI gives you?"),
            ("clarification", "What format would let you use the answer as-is?"),
            ("consequence", "What might go wrong if you ask for a table but give no columns?"),
            ("reflection", "How would you describe your ideal output in one sentence?"),
        ],
        "scenarios": [
            {
                "title": "Event schedule",
                "category": "planning",
                "context": "Turn a list of festival events into a table with date, time and location.",
            },
        ],
    },
    {
        "order_index": 5,
        "title": "Iterative Refinement",
        "description": "Read a weak answer, diagnose what the prompt was missing, and revise.",
        "techniques": ["iterative_refinement", "self_critique"],
        "policy_context": "Good drafts usually take several rounds of review.",
        "questions": [
            ("exploration", "What do you do when the first answer is not what you wanted?"),
            ("clarification", "How can you tell whether the problem is the prompt or the model?"),
            ("assumption", "Is it better to start over or to refine in the same conversation?"),
            ("consequence", "What do you learn by asking the AI to critique its own answer?"),
            ("reflection", "Which of the techniques from this course will you reach for first?"),
        ],
        "scenarios": [
            {
                "title": "Press release revision",
                "category": "communication",
                "context": "Improve a press release draft that reviewers found too long and vague.",
            },
        ],
    },
]


async def seed_curriculum(session: AsyncSession) -> int:
    """Insert missing curriculum modules. Returns how many were created."""
    existing = {
        module.order_index: module
        for module in (await session.scalars(select(Module).order_by(Module.order_index))).all()
    }

    created = 0
    previous: Module | None = None
    for entry in CURRICULUM:
        module = existing.get(entry["order_index"])
        if module is None:
            module = Module(
                title=entry["title"],
                description=entry["description"],
                techniques=list(entry["techniques"]),
                policy_context=entry["policy_context"],
                order_index=entry["order_index"],
                prerequisite_module_id=previous.id if previous else None,
                is_active=True,
            )
            session.add(module)
            await session.flush()
            session.add_all(
                SocraticQuestionTemplate(
                    module_id=module.id,
                    question_type=question_type,
                    question_text=question_text,
                    order_index=index,
                )
                for index, (question_type, question_text) in enumerate(entry["questions"])
            )
            session.add_all(Scenario(module_id=module.id, **scenario) for scenario in entry["scenarios"])
            created += 1
            logger.info("Seeded module %d: %s", module.order_index, module.title)
        previous = module

    await session.commit()
    return created


async def main() -> None:
    """Create tables and seed the curriculum into ``DATABASE_URL``."""
    settings = get_settings()
    engine = create_app_engine(settings.DATABASE_URL)
    try:
        await init_database(engine)
        async with create_session_maker(engine)() as session:
            created = await seed_curriculum(session)
        logger.info("Seeding finished: %d module(s) created", created)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
