"""
Scenario test infrastructure.

End-to-end behavioral contracts that verify:
- Raw records -> normalization -> allocation -> status -> aggregation -> indicators
"""

import pytest


@pytest.fixture
def large_snapshot():
    """
    60 jobs and 250 invoices as raw records, above both degradation limits.

    Every invoice is 100.00; every fifth invoice has a linked payment of
    100.00 and every seventh a linked part-payment of 40.00. Every tenth job
    also has a 60.00 payment recorded against the job only.
    """
    jobs = [{"id": f"job-{n:03d}", "clientId": "c1", "total": 500} for n in range(60)]
    invoices = []
    payments = []
    for n in range(250):
        invoice_id = f"inv-{n:03d}"
        invoices.append({"id": invoice_id, "jobId": f"job-{n % 60:03d}", "total": 100})
        if n % 5 == 0:
            payments.append({"id": f"pay-{n:03d}", "invoiceId": invoice_id, "amount": 100})
        elif n % 7 == 0:
            payments.append({"id": f"pay-{n:03d}", "invoiceId": invoice_id, "amount": 40})
    for n in range(0, 60, 10):
        payments.append({"id": f"jpay-{n:03d}", "jobId": f"job-{n:03d}", "amount": 60})
    return jobs, invoices, payments
