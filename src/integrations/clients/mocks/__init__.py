"""
Mock integration clients.

MockLoanApi answers like the remote Loan API without leaving the process. It is
exposed as an httpx transport, so the real HTTP client code runs unchanged
against it.

Used when:
- INTEGRATIONS_MODE=mock (local end-to-end runs)
- tests
"""
