"""
Real HTTP integration clients for the Loan API.

- loan_api: request plumbing and response classification
- token_manager: login and bearer token caching
- existence: customer lookup by national id

Switching:
The selection of mock vs real transport happens in src/tasks/runtime.py only.
"""
