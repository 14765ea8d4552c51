"""
Contracts (data models).

This folder defines the shapes shared by the relay components:
- the queued task envelope (form type + raw submission)
- the cached API token
- existence lookup results
- pipeline outcomes (success, terminal failure, retryable failure)

Both the mock and the real Loan API clients are driven through these contracts.
"""
