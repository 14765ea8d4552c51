"""
Background relay tasks.

Submissions are gated against duplicates by the intake hook, handed to Celery
(Redis broker) and delivered by a Celery worker, so the submitter never waits
on the Loan API.
"""
