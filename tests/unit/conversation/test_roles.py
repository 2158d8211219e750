# tests/unit/conversation/test_roles.py — v1
"""Tests for conversation/roles.py — role registry and inclusion rules."""

from __future__ import annotations

import pytest

from revycore.conversation import roles
from revycore.conversation.models import ContextSignals
from revycore.conversation.roles import RoleDescriptor, get_role, register_role, registered_roles


@pytest.fixture
def restore_registry():
    saved = dict(roles._REGISTRY)
    yield
    roles._REGISTRY.clear()
    roles._REGISTRY.update(saved)


class TestRegistry:
    def test_builtin_order(self):
        keys = [r.key for r in registered_roles()]
        assert keys[:5] == ["moderator", "lawyer", "auditor", "devils_advocate", "notetaker"]

    @pytest.mark.parametrize(
        ("key", "stage", "bonus"),
        [
            ("moderator", "opening", 30),
            ("moderator", "synthesis", 15),
            ("moderator", "conclusion", 25),
            ("optimist", "exploration", 15),
            ("creative", "exploration", 15),
            ("auditor", "analysis", 20),
            ("lawyer", "analysis", 20),
            ("strategist", "synthesis", 15),
            ("notetaker", "conclusion", 25),
            ("notetaker", "opening", 0),
        ],
    )
    def test_stage_bonus(self, key, stage, bonus):
        assert get_role(key).bonus_for(stage) == bonus

    def test_unknown_role(self):
        assert get_role("expert") is None

    def test_register_new_role(self, restore_registry):
        register_role(RoleDescriptor(key="expert", stage_bonus={"analysis": 5}))
        assert get_role("expert").bonus_for("analysis") == 5
        assert registered_roles()[-1].key == "expert"

    def test_register_replaces(self, restore_registry):
        register_role(RoleDescriptor(key="optimist", stage_bonus={"opening": 99}))
        assert get_role("optimist").bonus_for("opening") == 99


class TestInclusionRules:
    def test_lawyer_on_legal_topic(self):
        include = get_role("lawyer").include
        assert include("New tax law", ContextSignals(), [])
        assert not include("Quarterly numbers", ContextSignals(), [])

    def test_lawyer_on_legal_documents(self):
        include = get_role("lawyer").include
        assert include("Quarterly numbers", ContextSignals(document_types=["legal"]), [])

    def test_auditor(self):
        include = get_role("auditor").include
        assert include("x", ContextSignals(document_types=["financial"]), [])
        assert include("x", ContextSignals(primary_context="Audit planning"), [])
        assert not include("x", ContextSignals(), [])

    def test_devils_advocate(self, roster_of_four):
        include = get_role("devils_advocate").include
        assert include("x", ContextSignals(), roster_of_four[:2])
        assert not include("x", ContextSignals(), roster_of_four[:3])
        assert include("x", ContextSignals(complexity="high"), roster_of_four)

    def test_notetaker(self, roster_of_four):
        include = get_role("notetaker").include
        assert not include("x", ContextSignals(), roster_of_four[:2])
        assert include("x", ContextSignals(), roster_of_four[:3])
