"""Quest subsystem — trigger evaluation and quest lifecycle.

Quests are instantiated from immutable templates in campus_sim.catalog when
their trigger predicate holds for the record. Once attached to a record a
quest moves through its stages until Completed (or Failed); both terminal
states are final and every operation on a terminal or unknown quest is a
no-op that returns False.

Triggers are plain functions of the record, registered in TRIGGERS. The
scholarship trigger checks for both the bare template id and the per-year id
so a record migrated from an older save never receives a duplicate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from campus_sim.catalog import QUEST_TEMPLATES
from campus_sim.effects import apply_effects
from campus_sim.models import CharacterRecord, Quest, QuestTemplate
from campus_sim.notifications import NotificationSink

logger = logging.getLogger(__name__)

ROMANCE_CHARM_THRESHOLD = 80
ACADEMIC_MIN_YEAR = 3
SCHOLARSHIP_WEEKS = range(18, 21)


def _has_quest(record: CharacterRecord, *quest_ids: str) -> bool:
    return any(q.id in quest_ids for q in record.quests)


# ---------------------------------------------------------------------------
# Triggers: each returns the quest id to create, or None
# ---------------------------------------------------------------------------

def romance_trigger(record: CharacterRecord) -> str | None:
    if record.attributes.charm > ROMANCE_CHARM_THRESHOLD and not _has_quest(record, "campus_romance"):
        return "campus_romance"
    return None


def academic_trigger(record: CharacterRecord) -> str | None:
    if record.current_date.year >= ACADEMIC_MIN_YEAR and not _has_quest(record, "paper_publication"):
        return "paper_publication"
    return None


def honor_trigger(record: CharacterRecord) -> str | None:
    date = record.current_date
    quest_id = f"national_scholarship_y{date.year}"
    if (
        date.semester == 2
        and date.week in SCHOLARSHIP_WEEKS
        and not _has_quest(record, quest_id, "national_scholarship")
    ):
        return quest_id
    return None


# (trigger, template id) in evaluation order
TRIGGERS: list[tuple[Callable[[CharacterRecord], str | None], str]] = [
    (romance_trigger, "campus_romance"),
    (academic_trigger, "paper_publication"),
    (honor_trigger, "national_scholarship"),
]


def instantiate(template: QuestTemplate, quest_id: str | None = None) -> Quest:
    """Create a fresh Active quest from a template."""
    return Quest(
        id=quest_id or template.id,
        template_id=template.id,
        title=template.title,
        description=template.description,
        type=template.type,
        status="Active",
        progress=0,
        current_stage=0,
        stages=[s.model_copy() for s in template.stages],
        rewards=template.rewards.model_copy(deep=True),
    )


def check_all_triggers(record: CharacterRecord, sink: NotificationSink | None = None) -> list[Quest]:
    """Evaluate every trigger once; attach and announce new quests."""
    created: list[Quest] = []
    for trigger, template_id in TRIGGERS:
        quest_id = trigger(record)
        if quest_id is None:
            continue
        quest = instantiate(QUEST_TEMPLATES[template_id], quest_id)
        record.quests.append(quest)
        created.append(quest)
        logger.info("Quest %s triggered", quest_id)
        if sink is not None:
            sink.push(f"New quest: {quest.title}", "info")
    return created


def _active_quest(record: CharacterRecord, quest_id: str) -> Quest | None:
    quest = record.find_quest(quest_id)
    if quest is None:
        logger.warning("Unknown quest %r", quest_id)
        return None
    if quest.status != "Active":
        logger.debug("Quest %s is already %s", quest_id, quest.status)
        return None
    return quest


def advance_stage(record: CharacterRecord, quest_id: str, sink: NotificationSink | None = None) -> bool:
    """Complete the current stage and move to the next, finishing the quest
    once stages run out."""
    quest = _active_quest(record, quest_id)
    if quest is None:
        return False

    next_stage = quest.current_stage + 1
    if next_stage >= len(quest.stages):
        return complete_quest(record, quest_id, sink)

    quest.stages[quest.current_stage].is_complete = True
    quest.current_stage = next_stage
    # progress is monotonic while Active
    quest.progress = max(quest.progress, round(next_stage / len(quest.stages) * 100))
    if sink is not None:
        sink.push(f"Quest progress: {quest.title} ({quest.stages[next_stage].name})", "info")
    return True


def update_progress(
    record: CharacterRecord, quest_id: str, delta: float, sink: NotificationSink | None = None
) -> bool:
    quest = _active_quest(record, quest_id)
    if quest is None:
        return False
    if delta <= 0:
        logger.debug("Ignoring non-positive progress delta %s for %s", delta, quest_id)
        return False
    quest.progress = min(100, quest.progress + delta)
    if quest.progress >= 100:
        return complete_quest(record, quest_id, sink)
    return True


def complete_quest(record: CharacterRecord, quest_id: str, sink: NotificationSink | None = None) -> bool:
    """Mark complete and grant rewards. Idempotent: a second call is a no-op."""
    quest = _active_quest(record, quest_id)
    if quest is None:
        return False

    rewards = quest.rewards
    if rewards.attributes:
        apply_effects(
            record,
            [{"kind": "attribute", "target": k, "delta": v} for k, v in rewards.attributes.items()],
        )
    if rewards.money:
        record.money += rewards.money
    if rewards.item is not None:
        record.inventory.append(rewards.item.model_copy(deep=True))
    for flag, value in rewards.flags.items():
        if isinstance(getattr(record.flags, flag, None), bool):
            setattr(record.flags, flag, value)
        else:
            logger.warning("Quest %s rewards unknown flag %r", quest_id, flag)
    if rewards.honor and rewards.honor not in record.achievements:
        record.achievements.append(rewards.honor)
        record.academic.honors.append(rewards.honor)

    quest.status = "Completed"
    quest.progress = 100
    for stage in quest.stages:
        stage.is_complete = True
    quest.current_stage = max(0, len(quest.stages) - 1)

    logger.info("Quest %s completed", quest_id)
    if sink is not None:
        sink.push(f"Quest complete: {quest.title}", "success")
        if rewards.honor:
            sink.push(f"Honor earned: {rewards.honor}", "success")
    return True


def fail_quest(record: CharacterRecord, quest_id: str, sink: NotificationSink | None = None) -> bool:
    quest = _active_quest(record, quest_id)
    if quest is None:
        return False
    quest.status = "Failed"
    logger.info("Quest %s failed", quest_id)
    if sink is not None:
        sink.push(f"Quest failed: {quest.title}", "error")
    return True
