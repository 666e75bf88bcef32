"""
Zendit Top-up Lambda Utilities
==============================

Shared helpers for the airtime top-up Lambda functions:

- logger.py          → structured JSON logging
- config.py          → Zendit credentials/endpoints (env or AWS Secrets Manager)
- zendit_client.py   → token, operator lookup and top-up calls against Zendit

Environment variables expected:
  • ZENDIT_ID / ZENDIT_SECRET  - Zendit client credentials
  • ZENDIT_SECRET_NAME         - Secrets Manager secret holding them instead (optional)
  • ZENDIT_AUTH_URL            - OAuth token endpoint (optional)
  • ZENDIT_API_BASE_URL        - Zendit API base URL (optional)
  • ZENDIT_TIMEOUT_SECONDS     - Per-call HTTP timeout (default: 30)
  • AWS_REGION                 - Region for Secrets Manager (default: us-east-1)
  • LOG_LEVEL                  - Log verbosity (default: INFO)

Nothing in this package keeps per-request state between invocations.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
