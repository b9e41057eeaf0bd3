"""
Research - Techs and social policies a participant has taken.

Techs and policies are not drawn: every participant picks from the list the
ruleset offers. Which tech was picked is private until the owner reveals
it at the table; the public log only shows its level.
"""

from __future__ import annotations

from .action import ActionPayload, ActionResult
from .errors import ValidationError
from .guards import require_member
from .state import Category, CivTraits, Item, Participant, Session, Tech

MIN_TECH_LEVEL = 1
MAX_TECH_LEVEL = 5


def find_tech(session: Session, name: str | None) -> Tech | None:
    wanted = (name or "").strip().lower()
    for tech in session.techs:
        if tech.name.lower() == wanted:
            return tech
    return None


def available_techs(session: Session, participant: Participant) -> list[Tech]:
    """Techs of the ruleset the participant has not researched yet."""
    return [t for t in session.techs if t not in participant.techs_chosen]


def choose_tech(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    participant = require_member(session, payload.player_id)
    tech = find_tech(session, payload.name)
    if tech is None:
        raise ValidationError(f"No tech named {payload.name} in this game")
    if tech in participant.techs_chosen:
        raise ValidationError(f"{participant.username} has already researched {tech.name}")

    participant.techs_chosen.append(tech)

    result = ActionResult(value=tech)
    result.log_public(
        session.session_id,
        f"{participant.username} researched a level {tech.level} tech",
        now,
    )
    result.log_private(
        session.session_id,
        participant.username,
        f"{participant.username} researched {tech.name}",
        now,
    )
    return result


def remove_tech(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    participant = require_member(session, payload.player_id)
    tech = find_tech(session, payload.name)
    if tech is None or tech not in participant.techs_chosen:
        raise ValidationError(f"{participant.username} has not researched {payload.name}")

    participant.techs_chosen.remove(tech)

    result = ActionResult(value=tech)
    result.log_public(
        session.session_id,
        f"{participant.username} removed a level {tech.level} tech",
        now,
    )
    result.log_private(
        session.session_id,
        participant.username,
        f"{participant.username} removed {tech.name}",
        now,
    )
    return result


def choose_social_policy(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    participant = require_member(session, payload.player_id)
    wanted = (payload.name or "").strip().lower()
    policy = next((p for p in session.social_policies if p.lower() == wanted), None)
    if policy is None:
        raise ValidationError(f"No social policy named {payload.name} in this game")
    if policy in participant.social_policies:
        raise ValidationError(f"{participant.username} has already adopted {policy}")

    participant.social_policies.append(policy)

    result = ActionResult(value=policy)
    result.log_public(session.session_id, f"{participant.username} adopted {policy}", now)
    return result


def grant_starting_tech(session: Session, participant: Participant, item: Item) -> Tech | None:
    """
    A revealed civilization hands its owner the civ's starting tech.

    Returns the tech granted, or None if there was nothing to grant.
    """
    if item.category != Category.CIV or not isinstance(item.payload, CivTraits):
        return None
    tech = find_tech(session, item.payload.starting_tech)
    if tech is None or tech in participant.techs_chosen:
        return None
    participant.techs_chosen.append(tech)
    return tech
