"""Tests for equipment classification."""

from types import SimpleNamespace

import pytest

from app.services.equipment import (
    DEFAULT_CATEGORY,
    EquipmentCategory,
    classify,
    classify_text,
)
from tests.mocks.models import MOCK_BIKE, MOCK_COURT


class TestClassifyText:
    @pytest.mark.parametrize(
        "name",
        ["Padel Court A", "Terrain 3", "PADEL central", "Center court"],
    )
    def test_court_names(self, name):
        assert classify_text(name) == EquipmentCategory.PADEL_COURT

    @pytest.mark.parametrize(
        "name",
        ["Vélo spinning", "VELO", "Tapis de course", "Elliptique", "Rameur", "Banc de musculation"],
    )
    def test_gym_names(self, name):
        assert classify_text(name) == EquipmentCategory.GYM_EQUIPMENT

    def test_accents_and_case_are_ignored(self):
        assert classify_text("vÉlO") == EquipmentCategory.GYM_EQUIPMENT
        assert classify_text("ELLIPTIQUE") == EquipmentCategory.GYM_EQUIPMENT

    def test_description_is_searched(self):
        assert classify_text("Machine 3", "Espace fitness") == EquipmentCategory.GYM_EQUIPMENT

    def test_gym_keywords_take_precedence(self):
        assert classify_text("Terrain couvert", "tapis roulant") == EquipmentCategory.GYM_EQUIPMENT

    def test_no_match_falls_back_to_default(self):
        assert classify_text("Salle polyvalente") == DEFAULT_CATEGORY
        assert DEFAULT_CATEGORY == EquipmentCategory.PADEL_COURT

    def test_empty_text(self):
        assert classify_text("", None) == DEFAULT_CATEGORY

    def test_deterministic(self):
        results = {classify_text("Vélo terrain", "court") for _ in range(20)}
        assert results == {EquipmentCategory.GYM_EQUIPMENT}


class TestClassify:
    def test_resource_models(self):
        assert classify(MOCK_COURT) == EquipmentCategory.PADEL_COURT
        assert classify(MOCK_BIKE) == EquipmentCategory.GYM_EQUIPMENT

    def test_object_without_description(self):
        resource = SimpleNamespace(name="Tapis")
        assert classify(resource) == EquipmentCategory.GYM_EQUIPMENT
