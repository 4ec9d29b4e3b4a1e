"""
Tests for entity resolution, intent normalization and the action applier.
"""

import pytest

from finplan.config import IntentSettings
from finplan.intents import (
    ActionApplier,
    ChangeKind,
    IntentDispatchError,
    derive_entity_name,
    normalize_label,
    parse_intent_actions,
    resolve_entity,
)
from finplan.models import (
    Asset,
    Expense,
    Frequency,
    IntentAction,
    Liability,
    Plan,
)

from conftest import build_plan


def action(verb, entity, target, amount=None, raw=None):
    return IntentAction(
        verb=verb,
        entity=entity,
        target=target,
        amount=amount,
        raw=raw or f"{verb} {entity} {target}",
    )


@pytest.fixture
def applier() -> ActionApplier:
    return ActionApplier(IntentSettings())


def assert_conserved(plan: Plan):
    summary = plan.summary
    assert summary.net_worth == summary.total_assets - summary.total_liabilities


class TestResolver:
    """Tests for the two-pass entity resolver."""

    def test_exact_match_is_case_insensitive(self, sample_plan):
        """Test that 'stocks' resolves to 'Stocks'."""
        assert resolve_entity(sample_plan.assets, "  stocks ").id == "asset-stocks"

    def test_exact_match_wins_over_earlier_substring(self):
        """Test that the exact pass runs before the substring pass."""
        items = [
            Asset(id="1", name="Car Loan Fund", current_value=1),
            Asset(id="2", name="Car Loan", current_value=1),
        ]
        assert resolve_entity(items, "car loan").id == "2"

    def test_ambiguous_substring_takes_first_in_list_order(self):
        """Test that 'account' resolves deterministically."""
        items = [
            Asset(id="savings", name="Savings Account", current_value=1),
            Asset(id="brokerage", name="Brokerage Account", current_value=1),
        ]
        assert resolve_entity(items, "account").id == "savings"
        assert resolve_entity(list(reversed(items)), "account").id == "brokerage"

    def test_resolution_is_idempotent(self, sample_plan):
        """Test that resolving twice returns the same entity."""
        first = resolve_entity(sample_plan.expenses, "rent")
        second = resolve_entity(sample_plan.expenses, "rent")
        assert first is second

    def test_matches_income_source_and_expense_payee(self, sample_plan):
        """Test that each entity is matched on its display field."""
        assert resolve_entity(sample_plan.incomes, "salary").id == "income-salary"
        assert resolve_entity(sample_plan.expenses, "grocer").id == "expense-groceries"

    def test_labels_are_lowercased_not_casefolded(self):
        """Test that matching uses plain lowercasing."""
        items = [Asset(id="1", name="Straße Fund", current_value=1)]
        assert normalize_label("  STRASSE ") == "strasse"
        assert resolve_entity(items, "STRASSE") is None
        assert resolve_entity(items, "STRAßE FUND").id == "1"

    def test_no_match(self, sample_plan):
        """Test that unknown targets return None."""
        assert resolve_entity(sample_plan.assets, "yacht") is None

    def test_empty_list_or_blank_target(self, sample_plan):
        """Test the None cases callers must handle."""
        assert resolve_entity([], "stocks") is None
        assert resolve_entity(sample_plan.assets, "") is None
        assert resolve_entity(sample_plan.assets, "   ") is None
        assert resolve_entity(sample_plan.assets, None) is None


class TestDeriveEntityName:
    """Tests for naming newly created entities."""

    def test_called_phrase(self):
        """Test that the text after 'called' becomes the name."""
        assert derive_entity_name("a new asset called savings account", "New Asset") == "savings account"

    def test_named_phrase(self):
        """Test that the text after 'named' becomes the name."""
        assert derive_entity_name("liability named Car Loan", "New Liability") == "Car Loan"

    def test_strips_a_new_and_entity_word(self):
        """Test that filler words are removed."""
        assert derive_entity_name("a new expense gym", "New Expense") == "gym"
        assert derive_entity_name("an new income bonus", "New Income") == "bonus"

    def test_plain_target_is_kept(self):
        """Test that an ordinary phrase passes through."""
        assert derive_entity_name("Stocks", "New Asset") == "Stocks"

    def test_fallback_when_nothing_remains(self):
        """Test the generic fallback name."""
        assert derive_entity_name("a new asset", "New Asset") == "New Asset"
        assert derive_entity_name("", "New Asset") == "New Asset"
        assert derive_entity_name(None, "New Expense") == "New Expense"


class TestParseIntentActions:
    """Tests for normalizing upstream candidates."""

    def test_normalizes_raw_candidate(self):
        """Test trimming, absolute amount and currency upper-casing."""
        [parsed] = parse_intent_actions([{
            "id": "a1",
            "verb": "add-item",
            "entity": "expense",
            "target": "  Gym  ",
            "amount": -45,
            "currency": " usd ",
            "raw": "add gym membership 45",
        }])
        assert parsed.id == "a1"
        assert parsed.target == "Gym"
        assert parsed.amount == 45
        assert parsed.currency == "USD"
        assert parsed.raw == "add gym membership 45"

    def test_drops_unusable_amounts(self):
        """Test that strings, booleans and NaN are not amounts."""
        candidates = [
            {"verb": "update", "entity": "asset", "target": "Stocks", "amount": "100"},
            {"verb": "update", "entity": "asset", "target": "Stocks", "amount": True},
            {"verb": "update", "entity": "asset", "target": "Stocks", "amount": float("nan")},
        ]
        assert [item.amount for item in parse_intent_actions(candidates)] == [None, None, None]

    def test_invalid_currency_is_dropped(self):
        """Test that only 3-letter codes are kept."""
        [parsed] = parse_intent_actions([
            {"verb": "update", "entity": "asset", "target": "Stocks", "currency": "dollars"},
        ])
        assert parsed.currency is None

    def test_defaults_raw_and_id(self):
        """Test that raw falls back to the target and ids are generated."""
        [parsed] = parse_intent_actions([
            {"verb": "remove-item", "entity": "expense", "target": "Rent"},
        ])
        assert parsed.raw == "Rent"
        assert parsed.id

    def test_unknown_entity_is_rejected(self):
        """Test that unsupported entities raise IntentDispatchError."""
        with pytest.raises(IntentDispatchError, match='Unsupported entity "pet"'):
            parse_intent_actions([{"verb": "add-item", "entity": "pet", "target": "Rex"}])

    def test_unknown_verb_is_rejected(self):
        """Test that unsupported verbs raise IntentDispatchError."""
        with pytest.raises(IntentDispatchError, match="Unsupported verb"):
            parse_intent_actions([{"verb": "double", "entity": "asset", "target": "Stocks"}])

    def test_models_pass_through(self):
        """Test that IntentAction instances are kept as-is."""
        original = action("update", "asset", "Stocks", 1)
        assert parse_intent_actions([original]) == [original]


class TestActionApplierAdd:
    """Tests for add-item actions."""

    def test_add_asset_to_empty_plan(self, applier):
        """Test creating the first asset."""
        plan = Plan()
        change = applier.apply(plan, action("add-item", "asset", "Stocks", 10000))

        assert change.kind == ChangeKind.CREATED
        assert plan.summary.total_assets == 10000
        created = plan.assets[0]
        assert created.name == "Stocks"
        assert created.category == "chat"
        assert created.notes == "Added via chat intent"
        assert created.annual_growth_rate == 0.05

    def test_add_asset_with_called_phrase(self, applier, sample_plan):
        """Test that the display name is cleaned from the phrase."""
        applier.apply(
            sample_plan,
            action("add-item", "asset", "a new asset called savings account", 5000),
        )
        assert sample_plan.assets[-1].name == "savings account"
        assert sample_plan.summary.total_assets == 20000

    def test_add_liability(self, applier, sample_plan):
        """Test creating a liability with default APR and minimum payment."""
        applier.apply(sample_plan, action("add-item", "liability", "student loan", 12000))

        created = sample_plan.liabilities[-1]
        assert created.interest_rate_apr == 0.05
        assert created.minimum_payment == 240
        assert sample_plan.summary.total_liabilities == 212000
        assert_conserved(sample_plan)

    def test_add_income_updates_cashflow(self, applier, sample_plan):
        """Test that a new income flows into both aggregations."""
        applier.apply(sample_plan, action("add-item", "income", "freelance design", 1200))

        created = sample_plan.incomes[-1]
        assert created.source == "freelance design"
        assert created.frequency == Frequency.MONTHLY
        assert sample_plan.summary.monthly_income == 9200
        assert sample_plan.summary.monthly_savings == 6200
        assert sample_plan.cashflow.monthly_income == 9200

    def test_add_requires_amount(self, applier, sample_plan):
        """Test that add-item without an amount fails."""
        with pytest.raises(IntentDispatchError, match='No amount detected for "add a car"'):
            applier.apply(
                sample_plan,
                action("add-item", "asset", "car", raw="add a car"),
            )

    def test_add_expense_requires_positive_amount(self, applier, sample_plan):
        """Test that zero-amount expenses are rejected."""
        with pytest.raises(IntentDispatchError, match="greater than zero"):
            applier.apply(sample_plan, action("add-item", "expense", "Gym", 0))

    def test_add_negative_asset_is_clamped(self, applier):
        """Test that asset amounts are clamped at zero."""
        plan = Plan()
        applier.apply(plan, action("add-item", "asset", "Boat", -100))
        assert plan.assets[0].current_value == 0

    def test_custom_created_defaults(self, sample_plan):
        """Test that created-entity defaults come from settings."""
        applier = ActionApplier(IntentSettings(
            created_category="assistant",
            liability_min_payment_factor=0.1,
            cashflow_frequency="yearly",
        ))
        applier.apply(sample_plan, action("add-item", "liability", "Car", 1000))
        applier.apply(sample_plan, action("add-item", "expense", "Insurance", 1200))

        assert sample_plan.liabilities[-1].category == "assistant"
        assert sample_plan.liabilities[-1].minimum_payment == 100
        assert sample_plan.expenses[-1].frequency == Frequency.YEARLY
        assert sample_plan.summary.monthly_expenses == 3100


class TestActionApplierUpdate:
    """Tests for update actions."""

    def test_update_asset_sets_value(self, applier, sample_plan):
        """Test that update sets an absolute value."""
        change = applier.apply(sample_plan, action("update", "asset", "stocks", 15000))

        assert change.kind == ChangeKind.UPDATED
        assert sample_plan.assets[0].current_value == 15000
        assert sample_plan.summary.total_assets == 20000

    def test_update_liability_is_not_additive(self, applier, sample_plan):
        """Test that the mortgage balance is replaced, not combined."""
        applier.apply(sample_plan, action("update", "liability", "Mortgage", 190000))
        assert sample_plan.liabilities[0].current_balance == 190000
        assert sample_plan.summary.total_liabilities == 190000
        assert_conserved(sample_plan)

    def test_update_expense_recomputes_cashflow(self, applier, sample_plan):
        """Test that editing rent changes monthly expenses."""
        applier.apply(sample_plan, action("update", "expense", "rent", 2700))
        assert sample_plan.summary.monthly_expenses == 3200
        assert sample_plan.cashflow.monthly_expenses == 3200
        assert sample_plan.cashflow.net_monthly == 4800

    def test_update_stamps_updated_at(self, applier, sample_plan):
        """Test that the entity's timestamp moves forward."""
        before = sample_plan.assets[0].updated_at
        applier.apply(sample_plan, action("update", "asset", "Stocks", 1))
        assert sample_plan.assets[0].updated_at >= before

    def test_update_negative_asset_is_clamped(self, applier, sample_plan):
        """Test that balances never go below zero."""
        applier.apply(sample_plan, action("update", "asset", "Stocks", -50))
        assert sample_plan.assets[0].current_value == 0

    def test_update_unknown_target(self, applier, sample_plan):
        """Test the not-found error message."""
        with pytest.raises(IntentDispatchError, match='Could not find an asset matching "yacht"'):
            applier.apply(sample_plan, action("update", "asset", "yacht", 1))

    def test_update_requires_finite_amount(self, applier, sample_plan):
        """Test that NaN is not accepted as an amount."""
        with pytest.raises(IntentDispatchError, match="No amount detected"):
            applier.apply(sample_plan, action("update", "asset", "Stocks", float("nan")))

    def test_update_income_to_zero_is_rejected(self, applier, sample_plan):
        """Test that recurring amounts stay positive."""
        with pytest.raises(IntentDispatchError, match="greater than zero"):
            applier.apply(sample_plan, action("update", "income", "Salary", 0))

    def test_failed_update_leaves_plan_unchanged(self, applier, sample_plan):
        """Test that validation happens before any mutation."""
        before = sample_plan.model_dump()
        with pytest.raises(IntentDispatchError):
            applier.apply(sample_plan, action("update", "liability", "boat loan", 5))
        assert sample_plan.model_dump() == before


class TestActionApplierRemove:
    """Tests for remove-item actions."""

    def test_remove_expense_recomputes_cashflow(self, applier, sample_plan):
        """Test removing rent from the sample plan."""
        change = applier.apply(sample_plan, action("remove-item", "expense", "rent"))

        assert change.kind == ChangeKind.DELETED
        assert change.record.id == "expense-rent"
        assert [item.payee for item in sample_plan.expenses] == ["Groceries"]
        assert sample_plan.summary.monthly_expenses == 500
        assert sample_plan.summary.monthly_savings == 7500

    def test_remove_does_not_need_amount(self, applier, sample_plan):
        """Test that remove-item ignores the amount."""
        applier.apply(sample_plan, action("remove-item", "liability", "mortgage"))
        assert sample_plan.liabilities == []
        assert sample_plan.summary.net_worth == 15000

    def test_remove_only_first_match(self, applier):
        """Test that duplicate names remove a single entity."""
        plan = build_plan(assets=[
            Asset(id="1", name="Cash", current_value=1),
            Asset(id="2", name="Cash", current_value=2),
        ])
        applier.apply(plan, action("remove-item", "asset", "cash"))
        assert [asset.id for asset in plan.assets] == ["2"]

    def test_remove_unknown_target(self, applier, sample_plan):
        """Test that removal fails like update when nothing matches."""
        with pytest.raises(IntentDispatchError, match='Could not find an expense matching "gym"'):
            applier.apply(sample_plan, action("remove-item", "expense", "gym"))


class TestConservation:
    """Net worth conservation after every successful apply."""

    @pytest.mark.parametrize("verb,entity,target,amount", [
        ("add-item", "asset", "Bonds", 1234.56),
        ("add-item", "liability", "Card", 999.99),
        ("update", "asset", "savings", 0.01),
        ("update", "liability", "mortgage", 0),
        ("remove-item", "asset", "stocks", None),
        ("add-item", "expense", "Gym", 45.5),
    ])
    def test_net_worth_is_conserved(self, applier, sample_plan, verb, entity, target, amount):
        """Test that net worth equals assets minus liabilities exactly."""
        applier.apply(sample_plan, action(verb, entity, target, amount))
        assert_conserved(sample_plan)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
