from collections import Counter
from datetime import date
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[2]))

from backend.app.ledger.engine import LedgerWindow, build_ledger  # noqa: E402
from backend.app.ledger.records import AccountContext, InvalidDateRangeError, SourceRecord  # noqa: E402


def _account(base: float) -> AccountContext:
    return AccountContext("cust_1", "Acme Stores", "customer", base)


def _sale(sale_id: str, d: str, folio: str, *prices: float, description: str = "Item") -> SourceRecord:
    items = [{"description": description, "qty": 1, "unitPrice": p} for p in prices]
    return SourceRecord("sale", sale_id, {"date": d, "billNumber": folio, "items": items})


def _payment(pay_id: str, d, amount: float, notes: str = "") -> SourceRecord:
    return SourceRecord("income", pay_id, {"date": d, "amount": amount, "details": notes})


def _history():
    return [
        _sale("s1", "2024-01-10", "INV-001", 500.0, description="Cotton roll"),
        _payment("p1", "2024-01-15", 200.0, notes="cash"),
        _sale("s2", "2024-02-05", "INV-002", 800.0, 45.5, description="Denim"),
        _payment("p2", "2024-02-05", 300.0, notes="Cheque 991"),
        _sale("s3", "2024-02-20", "INV-002", 120.0, description="Buttons"),
        _payment("p3", "2024-03-02", 99.0),
        _payment("p4", None, 10.0),
    ]


def test_scenario_a_opening_balance_folds_pre_cutoff_history():
    records = [_sale("s1", "2024-01-10", "INV-001", 500.0), _payment("p1", "2024-01-15", 200.0)]

    result = build_ledger(records, _account(1000.0), LedgerWindow(from_date=date(2024, 2, 1)))

    assert result.opening_balance == 1300.0
    assert result.opening_row.running_balance == 1300.0
    assert result.opening_row.date == date(2024, 2, 1)
    assert result.entries == ()


def test_scenario_b_same_day_entries_keep_arrival_order():
    records = [_sale("s1", "2024-02-05", "INV-9", 800.0), _payment("p1", "2024-02-05", 300.0)]

    result = build_ledger(records, _account(1300.0), LedgerWindow(from_date=date(2024, 2, 1)))

    assert [e.running_balance for e in result.entries] == [2100.0, 1800.0]
    assert result.closing_balance == 1800.0
    assert result.final_balance == 1800.0


def test_scenario_c_invoice_subtotal_on_chronologically_later_row():
    records = [
        _sale("s2", "2024-03-02", "INV-001", 150.0),
        _sale("s1", "2024-03-01", "INV-001", 100.0),
    ]

    result = build_ledger(records, _account(0.0), LedgerWindow())

    first, second = result.entries
    assert (first.id, first.is_group_terminal, first.group_subtotal) == ("sale-s1-0", False, None)
    assert (second.id, second.is_group_terminal, second.group_subtotal) == ("sale-s2-0", True, 250.0)


def test_scenario_d_search_on_payment_notes_hides_sales_without_touching_math():
    window = LedgerWindow(from_date=date(2024, 2, 1), to_date=date(2024, 2, 29))
    plain = build_ledger(_history(), _account(1000.0), window)
    searched = build_ledger(
        _history(), _account(1000.0), LedgerWindow(window.from_date, window.to_date, "cheque 991")
    )

    assert [e.id for e in searched.entries if e.visible] == ["pay-p2"]
    assert all(not e.visible for e in searched.entries if e.kind == "SaleItem")
    assert [e.running_balance for e in searched.entries] == [e.running_balance for e in plain.entries]
    assert [e.group_subtotal for e in searched.entries] == [e.group_subtotal for e in plain.entries]
    assert not any(e.subtotal_anchor for e in searched.entries)
    assert searched.final_balance == plain.final_balance


def test_scenario_e_empty_history():
    result = build_ledger([], _account(500.0), LedgerWindow(from_date=date(2024, 1, 1)))

    assert result.opening_balance == 500.0
    assert result.closing_balance == 500.0
    assert result.final_balance == 500.0
    assert result.entries == ()
    assert result.issues == ()


def test_fold_correctness_over_full_history():
    result = build_ledger(_history(), _account(1000.0), LedgerWindow())

    prev = result.opening_balance
    for e in result.entries:
        assert e.running_balance == pytest.approx(prev + e.debit - e.credit)
        prev = e.running_balance
    assert [e.date for e in result.entries] == sorted(e.date for e in result.entries)


def test_opening_balance_independent_of_to_date():
    openings = {
        build_ledger(_history(), _account(1000.0), LedgerWindow(date(2024, 2, 1), to_date)).opening_balance
        for to_date in (None, date(2024, 2, 1), date(2024, 2, 10), date(2024, 12, 31))
    }
    assert openings == {1300.0}


@pytest.mark.parametrize("search", ["denim", "INV-002", "cash", "zzz", "received"])
def test_filter_non_interference(search):
    window = LedgerWindow(from_date=date(2024, 1, 1))
    base = build_ledger(_history(), _account(1000.0), window)
    filtered = build_ledger(_history(), _account(1000.0), LedgerWindow(window.from_date, None, search))

    visible = Counter((e.id, e.running_balance) for e in filtered.entries if e.visible)
    visible_ids = {entry_id for entry_id, _ in visible}
    expected = Counter((e.id, e.running_balance) for e in base.entries if e.id in visible_ids)
    assert visible == expected


def test_grouping_completeness():
    result = build_ledger(_history(), _account(0.0), LedgerWindow(from_date=date(2024, 2, 1)))

    subtotal_sum = sum(e.group_subtotal for e in result.entries if e.is_group_terminal)
    debit_sum = sum(e.debit for e in result.entries if e.kind == "SaleItem")
    assert subtotal_sum == pytest.approx(debit_sum)
    assert subtotal_sum == pytest.approx(965.5)


def test_pipeline_is_idempotent():
    window = LedgerWindow(date(2024, 2, 1), date(2024, 2, 29), "denim")
    assert build_ledger(_history(), _account(1000.0), window) == build_ledger(_history(), _account(1000.0), window)


def test_undated_entries_are_excluded_and_reported():
    result = build_ledger(_history(), _account(1000.0), LedgerWindow())

    assert [e.id for e in result.undated] == ["pay-p4"]
    assert "pay-p4" not in {e.id for e in result.entries}
    assert [(i.source_id, i.code) for i in result.issues] == [("income:p4", "undated")]


def test_closing_balance_follows_last_visible_row():
    result = build_ledger(_history(), _account(1000.0), LedgerWindow(search="cotton"))

    (visible,) = result.visible_entries
    assert result.closing_balance == visible.running_balance == 1500.0
    assert result.final_balance == pytest.approx(1000.0 + 500 - 200 + 845.5 - 300 + 120 - 99)


def test_totals_cover_the_whole_window():
    result = build_ledger(_history(), _account(0.0), LedgerWindow(date(2024, 2, 1), date(2024, 2, 29), "zzz"))
    assert result.total_debit == pytest.approx(965.5)
    assert result.total_credit == 300.0


def test_inverted_range_is_rejected_not_swapped():
    with pytest.raises(InvalidDateRangeError):
        build_ledger(_history(), _account(0.0), LedgerWindow(date(2024, 3, 1), date(2024, 2, 1)))
