from stagelink.services.contract_terms import RADIUS_PLACEHOLDER, prepare_terms, radius_summary


def test_disabled_clause_has_no_summary():
    assert radius_summary(None) is None
    assert radius_summary({"enabled": False, "distance": 50, "time_restriction": 30}) is None


def test_incomplete_clause_gets_placeholder():
    assert radius_summary({"enabled": True, "distance": 50}) == RADIUS_PLACEHOLDER
    assert radius_summary({"enabled": True, "time_restriction": 2}) == RADIUS_PLACEHOLDER


def test_full_clause_sentence():
    summary = radius_summary(
        {"enabled": True, "distance": 50, "distance_unit": "miles", "time_restriction": 30, "time_unit": "days"}
    )
    assert summary == (
        "The artist agrees not to perform within 50 miles of the venue "
        "for 30 days before and after the event."
    )


def test_singular_units():
    summary = radius_summary(
        {"enabled": True, "distance": 1, "distance_unit": "kilometers", "time_restriction": 1, "time_unit": "weeks"}
    )
    assert "within 1 kilometer of" in summary
    assert "for 1 week before" in summary


def test_prepare_terms_keeps_unknown_sections_and_orders_lineup():
    terms = prepare_terms(
        {
            "hospitality": "Two drink tickets",
            "performers": [
                {"id": "h", "name": "Headliner", "performance_order": 1},
                {"id": "s", "name": "Opener", "performance_order": 5},
            ],
            "radius_clause": {"enabled": True, "distance": 10},
        }
    )
    assert terms["hospitality"] == "Two drink tickets"
    assert [(p["id"], p["performance_order"]) for p in terms["performers"]] == [("s", 1), ("h", 2)]
    assert terms["radius_clause"]["enabled"] is True
    assert terms["radius_clause"]["distance_unit"] == "miles"
