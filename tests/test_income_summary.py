from services.income_summary import SECTIONS, build_income_summary, get_income_summary

DAYS = ["2024-03-01", "2024-03-02"]


def _row(rows, title):
    return next(r for r in rows if r["title"] == title)


def _docs():
    return [
        {"date": "2024-03-01", "income_sub_category": "vehicles", "income_type": "cash", "total": 1000},
        {"date": "2024-03-01", "income_sub_category": "vehicles", "income_type": "kbnLeasing", "total": 10},
        {"date": "2024-03-01", "income_sub_category": "vehicles", "income_type": "installment", "total": 5},
        {"date": "2024-03-02", "income_sub_category": "service", "income_type": "inside",
         "amt_parts": 200, "amt_wage": "300", "deduct_deposit": 100, "total": 400},
        {"date": "2024-03-02", "income_sub_category": "service", "income_type": "outside1512",
         "amt_oil": 80, "deduct_deposit": 30, "total": 50},
        {"date": "2024-03-02", "income_sub_category": "service", "income_type": "repairDeposit", "total": 90},
        {"date": "2024-03-02", "income_sub_category": "parts", "income_type": "partKBN",
         "amt_battery": 50, "amt_tyre": 25, "total": 999},
        {"date": "2024-03-02", "income_sub_category": "other", "total": 70},
        {"date": "2024-03-02", "income_sub_category": "other", "total": 1000, "deleted": True},
        {"date": "2024-03-05", "income_sub_category": "other", "total": 1000},
    ]


class TestBuildIncomeSummary:
    def test_row_layout(self):
        rows = build_income_summary([], DAYS)
        expected = sum(1 + len(titles) for _, _, titles in SECTIONS)
        assert len(rows) == expected
        assert [r["id"] for r in rows] == list(range(expected))
        assert rows[0]["is_section"] and rows[0]["section"] == "vehicles"

    def test_vehicle_lines(self):
        rows = build_income_summary(_docs(), DAYS)
        assert _row(rows, "Cash sale income")["D2024-03-01"] == 1000
        assert _row(rows, "Installment income")["total"] == 15
        assert _row(rows, "Vehicle income")["D2024-03-01"] == 1015

    def test_service_breakdown_subtracts_deposit(self):
        rows = build_income_summary(_docs(), DAYS)
        assert _row(rows, "Parts - in-shop")["D2024-03-02"] == 200
        assert _row(rows, "Labour - in-shop")["D2024-03-02"] == 300
        assert _row(rows, "Less deposit - in-shop")["D2024-03-02"] == 100
        assert _row(rows, "Repair deposit income")["D2024-03-02"] == 90
        assert _row(rows, "In-shop repair")["D2024-03-02"] == 200 + 300 + 90 - 100

    def test_1512_has_no_deposit_deduction(self):
        rows = build_income_summary(_docs(), DAYS)
        assert _row(rows, "Oil - 1-5-12")["total"] == 80
        assert _row(rows, "Field service 1-5-12")["total"] == 80

    def test_part_kbn_uses_breakdown_only(self):
        rows = build_income_summary(_docs(), DAYS)
        assert _row(rows, "KBN battery sales")["total"] == 50
        assert _row(rows, "KBN tyre sales")["total"] == 25
        assert _row(rows, "Parts income")["total"] == 75

    def test_deleted_and_out_of_range_ignored(self):
        rows = build_income_summary(_docs(), DAYS)
        assert _row(rows, "Other income")["total"] == 70
        other_section = next(r for r in rows if r["is_section"] and r["section"] == "other")
        assert other_section["total"] == 70


def test_get_income_summary_reads_daily_incomes(seeded_day):
    data = get_income_summary(seeded_day["branch"], "2024-03-01", "2024-03-02")
    assert data["days"] == ["2024-03-01", "2024-03-02"]
    assert _row(data["rows"], "Cash sale income")["D2024-03-01"] == 10000
    assert _row(data["rows"], "Parts / oil SKC income")["D2024-03-01"] == 700
    assert data["grand_total"] == 10700


def test_get_income_summary_all_branches(seeded_day):
    data = get_income_summary("all", "2024-03-01", "2024-03-01")
    assert _row(data["rows"], "Cash sale income")["total"] == 10777
