# modules/meeting/policies.py
"""
Who may do what on a meeting and its children.

Every rule is a predicate ``(principal, meeting, target) -> bool``. Routes and
services call ``ensure`` instead of comparing user ids by hand.
Admins may read any meeting but do not get organizer powers.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException

from modules.meeting import models
from modules.security.deps import Principal


class MeetingAction(str, Enum):
    VIEW = "view"
    UPDATE = "update"
    DELETE = "delete"

    ADD_NOTE = "add_note"
    EDIT_NOTE = "edit_note"
    DELETE_NOTE = "delete_note"

    ADD_ACTION_ITEM = "add_action_item"
    EDIT_ACTION_ITEM = "edit_action_item"
    DELETE_ACTION_ITEM = "delete_action_item"
    TOGGLE_ACTION_ITEM = "toggle_action_item"
    JUDGE_ACTION_ITEM = "judge_action_item"

    ADD_INVITEE = "add_invitee"
    DELETE_INVITEE = "delete_invitee"
    RESPOND_INVITE = "respond_invite"

    ADD_MEETING_ATTACHMENT = "add_meeting_attachment"
    ADD_ASSIGNMENT_ATTACHMENT = "add_assignment_attachment"
    ADD_SUBMISSION_ATTACHMENT = "add_submission_attachment"
    DELETE_ATTACHMENT = "delete_attachment"

    READ_MEETING_FILE = "read_meeting_file"
    READ_ACTION_ITEM_FILE = "read_action_item_file"


# ----------------------------- relations -----------------------------
def is_organizer(p: Principal, meeting: models.Meeting) -> bool:
    return meeting.organizer_id is not None and meeting.organizer_id == p.user_id


def is_accepted_invitee(p: Principal, meeting: models.Meeting) -> bool:
    return any(i.user_id == p.user_id and i.is_accepted for i in meeting.invitees)


def is_participant(p: Principal, meeting: models.Meeting) -> bool:
    return is_organizer(p, meeting) or is_accepted_invitee(p, meeting)


def _is_assignee(p: Principal, item: Optional[models.ActionItem]) -> bool:
    return item is not None and item.assigned_to_id == p.user_id


# ------------------------------- rules -------------------------------
Rule = Callable[[Principal, models.Meeting, Any], bool]

RULES: Dict[MeetingAction, Rule] = {
    MeetingAction.VIEW: lambda p, m, t: p.is_admin or is_participant(p, m),
    MeetingAction.UPDATE: lambda p, m, t: is_organizer(p, m),
    MeetingAction.DELETE: lambda p, m, t: is_organizer(p, m),

    MeetingAction.ADD_NOTE: lambda p, m, t: is_participant(p, m),
    MeetingAction.EDIT_NOTE: lambda p, m, t: is_organizer(p, m) or (t is not None and t.created_by_id == p.user_id),
    MeetingAction.DELETE_NOTE: lambda p, m, t: is_organizer(p, m) or (t is not None and t.created_by_id == p.user_id),

    MeetingAction.ADD_ACTION_ITEM: lambda p, m, t: is_organizer(p, m),
    MeetingAction.EDIT_ACTION_ITEM: lambda p, m, t: is_organizer(p, m),
    MeetingAction.DELETE_ACTION_ITEM: lambda p, m, t: is_organizer(p, m),
    MeetingAction.TOGGLE_ACTION_ITEM: lambda p, m, t: _is_assignee(p, t),
    MeetingAction.JUDGE_ACTION_ITEM: lambda p, m, t: is_organizer(p, m),

    MeetingAction.ADD_INVITEE: lambda p, m, t: is_organizer(p, m),
    MeetingAction.DELETE_INVITEE: lambda p, m, t: is_organizer(p, m),
    MeetingAction.RESPOND_INVITE: lambda p, m, t: t is not None and t.user_id == p.user_id,

    MeetingAction.ADD_MEETING_ATTACHMENT: lambda p, m, t: is_participant(p, m),
    MeetingAction.ADD_ASSIGNMENT_ATTACHMENT: lambda p, m, t: is_organizer(p, m),
    MeetingAction.ADD_SUBMISSION_ATTACHMENT: lambda p, m, t: _is_assignee(p, t),
    MeetingAction.DELETE_ATTACHMENT: lambda p, m, t: is_organizer(p, m) or (
        t is not None and t.uploaded_by_id == p.user_id
    ),

    MeetingAction.READ_MEETING_FILE: lambda p, m, t: is_participant(p, m),
    MeetingAction.READ_ACTION_ITEM_FILE: lambda p, m, t: is_organizer(p, m) or _is_assignee(p, t),
}


def can(principal: Principal, action: MeetingAction, meeting: models.Meeting, target: Any = None) -> bool:
    return RULES[action](principal, meeting, target)


def ensure(principal: Principal, action: MeetingAction, meeting: models.Meeting, target: Any = None) -> None:
    if not can(principal, action, meeting, target):
        raise HTTPException(status_code=403, detail="You are not allowed to perform this action.")
