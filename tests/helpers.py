"""Payload builders and small helpers shared by the test modules."""

import re
from datetime import date


def extract_magic_token(html: str) -> str:
    match = re.search(r"token=([A-Za-z0-9_\-\.]+)", html)
    assert match, "No magic-link token in email"
    return match.group(1)


def teller_account(account_id, enrollment_id="enr_1", name="Checking", subtype="checking"):
    return {
        "id": account_id,
        "enrollment_id": enrollment_id,
        "name": name,
        "type": "depository",
        "subtype": subtype,
        "last_four": "1234",
        "status": "open",
        "currency": "USD",
    }


def teller_txn(on: date, amount, status="posted", description="Coffee", category="dining"):
    return {
        "id": f"txn_{on.isoformat()}_{amount}_{status}",
        "date": on.isoformat(),
        "amount": str(amount),
        "status": status,
        "description": description,
        "details": {"processing_status": "complete", "category": category},
    }

