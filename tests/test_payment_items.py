from services.payment_items import customer_name, get_bank_transfer_items, get_personal_loan_items


def _legacy_doc(**extra):
    doc = {
        "income_id": "L1",
        "total": 1000,
        "payment_type": "cash",
        "pay_amount": 500,
        "payment_type1": "transfer",
        "pay_amount1": 300,
        "bank_acc1": "KTB-77",
        "payment_type2": "transfer",
        "pay_amount2": 200,
    }
    doc.update(extra)
    return doc


class TestBankTransferItems:
    def test_legacy_slots_need_a_bank_account(self):
        lines = get_bank_transfer_items([_legacy_doc()])
        assert lines == [{
            "id": 0,
            "payment_type": "transfer",
            "amount": 300,
            "self_bank": "KTB-77",
            "person": None,
            "income_id": "L1",
            "deleted": False,
        }]

    def test_new_payments_are_copied(self):
        doc = {
            "income_id": "N1",
            "total": 900,
            "payments": [
                {"payment_type": "cash", "amount": 100},
                {"payment_type": "transfer", "amount": 800, "self_bank": "SCB-01", "person": "Anan"},
            ],
        }
        lines = get_bank_transfer_items([doc])
        assert len(lines) == 1
        assert lines[0]["amount"] == 800
        assert lines[0]["person"] == "Anan"
        assert lines[0]["income_id"] == "N1"

    def test_legacy_lines_come_first(self):
        new = {"income_id": "N1", "payments": [{"payment_type": "transfer", "amount": 5}]}
        lines = get_bank_transfer_items([new, _legacy_doc()])
        assert [l["income_id"] for l in lines] == ["L1", "N1"]

    def test_deleted_and_zero_total_documents_are_skipped(self):
        docs = [_legacy_doc(deleted=True), _legacy_doc(income_id="L2", total=0)]
        assert get_bank_transfer_items(docs) == []

    def test_empty_payments_array_ignores_leftover_slots(self):
        doc = _legacy_doc(income_id="N2", payments=[])
        assert get_bank_transfer_items([doc]) == []

    def test_missing_or_null_payments_reads_slots(self):
        assert [l["self_bank"] for l in get_bank_transfer_items([_legacy_doc(payments=None)])] == ["KTB-77"]


class TestPersonalLoanItems:
    def test_borrower_falls_back_to_customer(self):
        doc = {
            "income_id": "L1",
            "total": 400,
            "payment_type": "pLoan",
            "pay_amount": 400,
            "prefix": "Mr. ",
            "first_name": "Somchai",
            "last_name": "Dee",
        }
        lines = get_personal_loan_items([doc])
        assert len(lines) == 1
        assert lines[0]["borrower"] == "Mr. Somchai Dee"
        assert lines[0]["amount"] == 400

    def test_new_payment_keeps_own_borrower(self):
        doc = {
            "income_id": "N1",
            "first_name": "Anan",
            "payments": [{"payment_type": "pLoan", "amount": 50, "borrower": "Staff A"}],
        }
        assert get_personal_loan_items([doc])[0]["borrower"] == "Staff A"

    def test_transfers_are_not_loans(self):
        assert get_personal_loan_items([_legacy_doc()]) == []

    def test_empty_payments_array_is_not_a_loan(self):
        doc = {"income_id": "N3", "total": 400, "payments": [], "payment_type": "pLoan", "pay_amount": 400}
        assert get_personal_loan_items([doc]) == []


def test_customer_name_tolerates_missing_parts():
    assert customer_name({"first_name": "Anan"}) == "Anan"
    assert customer_name({}) == ""
