"""Turn engine — owns the session's GameState and drives the weekly loop.

Phases:

    main_menu → character_creation (gaokao, university_selection) → playing
    playing ⇄ event  (advance_turn enters event, resolve_event leaves it)
    playing/event → ending  (after the final week of year 4)

advance_turn() flow:
  1. Reject re-entrant calls while a turn is in flight (is_loading).
  2. Compute the next calendar date with carry (week 20 → semester,
     semester 2 → year). Past year 4 the game ends and nothing else happens.
  3. Weekly accrual through the effect engine: action points refill,
     stamina +30, stress -1, living costs, allowance every 4th week, job
     salary and its stamina cost. Running out of money adds stress. A new
     semester gets a GPA report.
  4. Commit, then ask the content adapter for an event. If the adapter
     itself blows up, fall back to the static registry.
  5. Enter the event phase, evaluate quest triggers, commit again.

Every public method is total: failures are logged and surfaced through
state.error and the notification sink rather than raised.
"""

from __future__ import annotations

import logging
import random
from typing import Any

from pydantic import ValidationError

from campus_sim import quests
from campus_sim.catalog import (
    ACTIONS,
    DEBT_STRESS_PENALTY,
    GIFT_RELATIONSHIP_BONUS,
    ITEMS,
    JOBS,
    MAINTENANCE_SURCHARGE,
    TUITION_FEE,
    WEEKLY_MAINTENANCE,
    next_static_event,
)
from campus_sim.config import merge_config
from campus_sim.content import ContentProvider
from campus_sim.effects import apply_effects, describe_effects
from campus_sim.models import (
    CharacterRecord,
    GameConfig,
    GameDate,
    GamePhase,
    GameState,
    NarrativeEvent,
)
from campus_sim.notifications import NotificationSink
from campus_sim.persistence import PersistenceManager

logger = logging.getLogger(__name__)

WEEKS_PER_SEMESTER = 20
SEMESTERS_PER_YEAR = 2
FINAL_YEAR = 4
HISTORY_LIMIT = 50
ALLOWANCE_INTERVAL_WEEKS = 4

WEEKLY_STAMINA_RECOVERY = 30
WEEKLY_STRESS_RELIEF = 1
CHAT_STAMINA_COST = 5
CHAT_RELATIONSHIP_GAIN = 5

NAVIGABLE_PHASES = {"main_menu", "character_creation", "gaokao", "university_selection", "playing"}


def next_date(date: GameDate) -> GameDate:
    """Advance one week with carry. The result may have year > FINAL_YEAR."""
    week, semester, year = date.week + 1, date.semester, date.year
    if week > WEEKS_PER_SEMESTER:
        week = 1
        semester += 1
    if semester > SEMESTERS_PER_YEAR:
        semester = 1
        year += 1
    return GameDate(year=year, semester=semester, week=week)


class TurnEngine:
    """One engine per session. Nothing here is module-global.

    Args:
        content:       Event source. Defaults to a ContentProvider with the
                       HTTP transport.
        persistence:   Snapshot codec and optional save slot. When it has a
                       slot every mutation is written through (if auto_save).
        notifications: Sink for player-facing messages.
        config:        Initial GameConfig.
        rng:           Random source for the static registry fallback.
    """

    def __init__(
        self,
        content: ContentProvider | None = None,
        persistence: PersistenceManager | None = None,
        notifications: NotificationSink | None = None,
        config: GameConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self.content = content or ContentProvider(rng=self._rng)
        self.persistence = persistence or PersistenceManager()
        self.notifications = notifications or NotificationSink()
        self.state = GameState(config=config or GameConfig())
        # Bumped by force_unlock()/reset() so a stale in-flight turn can tell
        # it has been superseded.
        self._generation = 0

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        if self.state.config.auto_save:
            self.persistence.save(self.state)

    def _playing_record(self, operation: str) -> CharacterRecord | None:
        """The record, if direct actions are allowed right now."""
        if self.state.record is None:
            logger.info("%s ignored: no active game", operation)
            return None
        if self.state.phase != "playing":
            logger.info("%s ignored in phase %s", operation, self.state.phase)
            return None
        return self.state.record

    def _spend_action_point(self, record: CharacterRecord, cost: int) -> bool:
        if record.action_points < cost:
            self.notifications.push("Not enough action points this week", "warning")
            return False
        record.action_points -= cost
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_new_game(self, record: CharacterRecord) -> None:
        state = self.state
        state.record = record
        state.current_event = None
        state.phase = "playing"
        state.error = None
        logger.info("New game started for %s", record.name)
        self.notifications.push(f"Welcome to {record.academic.university_name or 'campus'}, {record.name}!", "success")
        self._commit()

    def set_phase(self, phase: GamePhase) -> bool:
        """Navigate between menu, creation and playing phases.

        The event and ending phases are entered only by advance_turn, and the
        event phase is left only through resolve_event.
        """
        state = self.state
        if phase not in NAVIGABLE_PHASES:
            logger.warning("Phase %s cannot be set directly", phase)
            return False
        if state.phase == "event":
            logger.warning("Resolve the pending event before leaving the event phase")
            return False
        if phase == "playing" and (state.record is None or state.phase == "ending"):
            logger.warning("Cannot enter playing phase from %s", state.phase)
            return False
        state.phase = phase
        self._commit()
        return True

    def reset(self) -> None:
        """Drop the record and clear the save slot, keeping the config."""
        self._generation += 1
        self.state = GameState(config=self.state.config)
        self.notifications.clear()
        self.persistence.clear()
        logger.info("Game reset")

    def force_unlock(self) -> None:
        """Operator escape hatch for a turn stuck in flight."""
        if self.state.is_loading:
            logger.warning("Force-unlocking in-flight turn")
        self._generation += 1
        self.state.is_loading = False

    def restore(self) -> bool:
        """Load the persisted snapshot on start-up. Returns True when restored."""
        restored = self.persistence.load(self.state)
        if restored is self.state:
            if self.persistence.has_save():
                self.notifications.push("Saved game was corrupted and has been ignored", "warning")
            return False
        self.state = restored
        return True

    # ------------------------------------------------------------------
    # Turn loop
    # ------------------------------------------------------------------

    async def advance_turn(self) -> NarrativeEvent | None:
        """Advance one week. Returns the new event, or None when nothing happened."""
        state = self.state
        if state.is_loading:
            logger.warning("advance_turn ignored: a turn is already in flight")
            return None
        record = state.record
        if record is None:
            logger.info("advance_turn ignored: no active game")
            return None
        if state.phase not in ("playing", "event"):
            logger.info("advance_turn ignored in phase %s", state.phase)
            return None

        generation = self._generation
        state.is_loading = True
        try:
            date = next_date(record.current_date)
            if date.year > FINAL_YEAR:
                state.current_event = None
                state.phase = "ending"
                logger.info("%s has finished university", record.name)
                self.notifications.push("Your university years are over. Time to graduate!", "success")
                self._commit()
                return None

            if state.current_event is not None:
                logger.info("Unresolved event %s superseded by the next turn", state.current_event.id)

            finished = record.current_date
            record.current_date = date
            record.action_points = record.max_action_points
            if date.semester != finished.semester:
                self.notifications.push(
                    f"Year {finished.year}, semester {finished.semester} is over. "
                    f"Your GPA stands at {record.academic.gpa:.2f}",
                    "info",
                )

            maintenance = WEEKLY_MAINTENANCE + MAINTENANCE_SURCHARGE.get(record.family.wealth, 0)
            accrual: list[dict[str, Any]] = [
                {"kind": "attribute", "target": "stamina", "delta": WEEKLY_STAMINA_RECOVERY},
                {"kind": "attribute", "target": "stress", "delta": -WEEKLY_STRESS_RELIEF},
                {"kind": "money", "delta": -maintenance},
            ]
            if date.week % ALLOWANCE_INTERVAL_WEEKS == 0 and record.family.monthly_allowance:
                accrual.append({"kind": "money", "delta": record.family.monthly_allowance})
                self.notifications.push(
                    f"Allowance received: ¥{record.family.monthly_allowance}", "success"
                )
            if record.flags.has_job:
                job = JOBS.get(record.current_job_id or "")
                if job is None:
                    logger.warning("Record has a job flag but unknown job %r", record.current_job_id)
                else:
                    accrual.append({"kind": "money", "delta": job["salary"]})
                    accrual.append(
                        {"kind": "attribute", "target": "stamina", "delta": -job["energy_cost"]}
                    )
            income = sum(e["delta"] for e in accrual if e["kind"] == "money")
            if record.money + income < 0:
                accrual.append({"kind": "attribute", "target": "stress", "delta": DEBT_STRESS_PENALTY})
                self.notifications.push(
                    "You can't cover this week's living costs. The money worries weigh on you.",
                    "error",
                )
            apply_effects(record, accrual)
            self._commit()

            try:
                event = await self.content.generate_event(
                    state.config, record, location=record.current_location
                )
            except Exception:
                logger.exception("Content adapter failed, using static registry")
                event = next_static_event(record, date, self._rng)

            if generation != self._generation:
                logger.warning("Discarding event from a superseded turn")
                return None

            state.current_event = event
            state.phase = "event"
            if event.source == "fallback" and state.config.llm.api_key:
                self.notifications.push("Content provider unavailable, playing in offline mode", "info")

            quests.check_all_triggers(record, self.notifications)
            self._commit()
            return event
        except Exception as e:
            logger.exception("advance_turn failed")
            if generation == self._generation:
                self.set_error(f"Failed to advance the turn: {e}")
            return None
        finally:
            if generation == self._generation:
                state.is_loading = False

    def resolve_event(self, choice_id: str) -> bool:
        state = self.state
        event, record = state.current_event, state.record
        if state.phase != "event" or event is None or record is None:
            logger.info("resolve_event ignored: no pending event")
            return False
        choice = next((c for c in event.choices if c.id == choice_id), None)
        if choice is None:
            logger.info("resolve_event ignored: unknown choice %r", choice_id)
            return False

        summary = describe_effects(record, choice.effects)
        apply_effects(record, choice.effects)
        record.event_history = (record.event_history + [event])[-HISTORY_LIMIT:]
        state.current_event = None
        state.phase = "playing"
        self.notifications.push(f"{event.title}: {summary}" if summary else event.title, "info")
        quests.check_all_triggers(record, self.notifications)
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Direct actions
    # ------------------------------------------------------------------

    def apply_effects(self, effects: list[Any]) -> bool:
        record = self.state.record
        if record is None:
            logger.info("apply_effects ignored: no active game")
            return False
        apply_effects(record, effects)
        self._commit()
        return True

    def process_action(self, action: str, ap_cost: int = 1) -> bool:
        """Spend action points on one of the weekly activities in ACTIONS."""
        record = self._playing_record("process_action")
        if record is None:
            return False

        if action == "pay_fees":
            return self._pay_fees(record)

        effects = ACTIONS.get(action)
        if effects is None:
            logger.warning("Unknown action %r", action)
            return False
        stamina_cost = -sum(
            e["delta"] for e in effects
            if e.get("target") == "stamina" and e["delta"] < 0
        )
        if record.attributes.stamina < stamina_cost:
            self.notifications.push("You are too exhausted for that", "warning")
            return False
        money_cost = -sum(e["delta"] for e in effects if e["kind"] == "money" and e["delta"] < 0)
        if record.money < money_cost:
            self.notifications.push("You can't afford that right now", "warning")
            return False
        if not self._spend_action_point(record, ap_cost):
            return False

        summary = describe_effects(record, effects)
        apply_effects(record, effects)
        self.notifications.push(f"{action.capitalize()}: {summary}", "info")
        self._commit()
        return True

    def _pay_fees(self, record: CharacterRecord) -> bool:
        if record.money < TUITION_FEE:
            self.notifications.push(f"Tuition is ¥{TUITION_FEE}; you can't pay it yet", "warning")
            return False
        apply_effects(record, [{"kind": "money", "delta": -TUITION_FEE}])
        record.flags.is_on_probation = False
        self.notifications.push(f"Tuition paid: ¥{TUITION_FEE}", "success")
        self._commit()
        return True

    def use_item(self, item_id: str, target_npc_id: str | None = None) -> bool:
        record = self._playing_record("use_item")
        if record is None:
            return False
        index = next((i for i, it in enumerate(record.inventory) if it.id == item_id), None)
        if index is None:
            logger.info("use_item ignored: %r not in inventory", item_id)
            return False
        item = record.inventory[index]

        effects: list[Any] = list(item.effects)
        if item.category == "gift":
            if target_npc_id is None or record.find_npc(target_npc_id) is None:
                self.notifications.push("Choose someone to give the gift to", "warning")
                return False
            effects.append({
                "kind": "relationship",
                "target_npc_id": target_npc_id,
                "delta": GIFT_RELATIONSHIP_BONUS,
            })

        summary = describe_effects(record, effects)
        apply_effects(record, effects)
        if item.consumable:
            del record.inventory[index]
        self.notifications.push(f"Used {item.name}: {summary}" if summary else f"Used {item.name}", "info")
        self._commit()
        return True

    def buy_item(self, item_id: str) -> bool:
        record = self._playing_record("buy_item")
        if record is None:
            return False
        item = ITEMS.get(item_id)
        if item is None:
            logger.warning("Unknown item %r", item_id)
            return False
        if record.money < item.value:
            self.notifications.push(f"Not enough money for {item.name}", "warning")
            return False
        apply_effects(record, [{"kind": "money", "delta": -item.value}])
        record.inventory.append(item.model_copy(deep=True))
        self.notifications.push(f"Bought {item.name} for ¥{item.value}", "success")
        self._commit()
        return True

    def chat_with_npc(self, npc_id: str) -> bool:
        record = self._playing_record("chat_with_npc")
        if record is None:
            return False
        npc = record.find_npc(npc_id)
        if npc is None:
            logger.info("chat_with_npc ignored: unknown NPC %r", npc_id)
            return False
        if record.attributes.stamina < CHAT_STAMINA_COST:
            self.notifications.push("You are too tired to chat", "warning")
            return False
        apply_effects(record, [
            {"kind": "attribute", "target": "stamina", "delta": -CHAT_STAMINA_COST},
            {"kind": "relationship", "target_npc_id": npc_id, "delta": CHAT_RELATIONSHIP_GAIN},
        ])
        self.notifications.push(f"You had a nice chat with {npc.name}", "info")
        self._commit()
        return True

    def apply_job(self, job_id: str) -> bool:
        record = self._playing_record("apply_job")
        if record is None:
            return False
        job = JOBS.get(job_id)
        if job is None:
            logger.warning("Unknown job %r", job_id)
            return False
        if record.flags.has_job:
            self.notifications.push("Quit your current job first", "warning")
            return False
        for attr, minimum in job["requirements"].items():
            value = getattr(record.attributes, attr, None)
            if value is None or value < minimum:
                self.notifications.push(f"{job['title']} requires {attr} {minimum}+", "warning")
                return False
        record.current_job_id = job_id
        record.flags.has_job = True
        self.notifications.push(f"Hired as {job['title']} (¥{job['salary']}/week)", "success")
        self._commit()
        return True

    def quit_job(self) -> bool:
        record = self._playing_record("quit_job")
        if record is None or not record.flags.has_job:
            return False
        record.current_job_id = None
        record.flags.has_job = False
        self.notifications.push("You quit your job", "info")
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Quests
    # ------------------------------------------------------------------

    def _quest_op(self, op, quest_id: str, *args: Any) -> bool:
        record = self.state.record
        if record is None:
            return False
        changed = op(record, quest_id, *args, sink=self.notifications)
        if changed:
            self._commit()
        return changed

    def advance_quest_stage(self, quest_id: str) -> bool:
        return self._quest_op(quests.advance_stage, quest_id)

    def update_quest_progress(self, quest_id: str, delta: float) -> bool:
        return self._quest_op(quests.update_progress, quest_id, delta)

    def complete_quest(self, quest_id: str) -> bool:
        return self._quest_op(quests.complete_quest, quest_id)

    def fail_quest(self, quest_id: str) -> bool:
        return self._quest_op(quests.fail_quest, quest_id)

    # ------------------------------------------------------------------
    # Settings, saves, errors
    # ------------------------------------------------------------------

    def set_config(self, update: dict[str, Any]) -> bool:
        try:
            self.state.config = merge_config(self.state.config, update)
        except ValidationError as e:
            logger.warning("Rejected config update: %s", e.errors()[0]["msg"])
            return False
        self._commit()
        return True

    def export_save(self) -> str:
        return self.persistence.export_snapshot(self.state)

    def import_save(self, text: str) -> bool:
        if self.state.is_loading:
            logger.warning("import_save ignored: a turn is in flight")
            return False
        if not self.persistence.import_snapshot(text, self.state):
            self.notifications.push("Save file is corrupted or invalid", "error")
            return False
        self.notifications.push("Save imported", "success")
        self._commit()
        return True

    def set_error(self, message: str) -> None:
        self.state.error = message
        self.notifications.push(message, "error")

    def clear_error(self) -> None:
        self.state.error = None

    def dismiss_notification(self, notification_id: str) -> bool:
        return self.notifications.dismiss(notification_id)

    def snapshot(self) -> dict[str, Any]:
        """Observable state for UIs and operator tools."""
        data = self.state.model_dump()
        data["notifications"] = self.notifications.to_list()
        return data
