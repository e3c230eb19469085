"""Shared test fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from resume_optimizer.clients.llm_client import LLMClient, LLMResponse
from resume_optimizer.models.payment import PaymentVerification
from resume_optimizer.storage.state_store import StateStore

SAMPLE_FEEDBACK = """### Overall Summary
Your resume shows solid backend experience and clear ownership of production systems.
The biggest gaps are missing metrics and a generic summary that ignores the target role.

### Section-by-Section Breakdown
- **Summary:** Lead with the platform work and name the stack the role asks for.
- **Experience:** Quantify the latency work ("cut p95 from 900ms to 300ms").

### Tailoring for the Target Role
Mirror "distributed systems" and "Kubernetes" from the posting.

### Final Polish
Keep every bullet in past tense.

---
### Refined Resume Copy
```markdown
# Jane Smith
Backend Engineer | Python, Go, Kubernetes

## Experience
- Cut p95 API latency from 900ms to 300ms across 40 services
```

---
### Cover Letter Draft
```markdown
Dear Hiring Manager,

I am excited to apply for the Senior Backend Engineer role on your platform team.
```
"""


@pytest.fixture
def sample_feedback() -> str:
    return SAMPLE_FEEDBACK


@pytest.fixture
def sample_resume_text() -> str:
    return """Jane Smith
jane@example.com | 555-0100

Experience:
- Acme Corp (2021 - present) - Backend Engineer
  - Built REST APIs in Python serving 2M requests/day
  - Reduced API latency by moving hot paths to Redis

Skills: Python, Go, PostgreSQL, Redis, Docker
"""


@pytest.fixture
def sample_goals() -> str:
    return "Move into a senior backend role at a platform company."


@pytest.fixture
def sample_requirements() -> str:
    return """Senior Backend Engineer
- 5+ years building distributed systems
- Kubernetes in production
- Python or Go
"""


@pytest.fixture
def paid_verification() -> PaymentVerification:
    return PaymentVerification(
        success=True,
        payment_status="paid",
        customer_email="jane@example.com",
        amount_total=999,
        currency="usd",
    )


@pytest.fixture
def state_store(tmp_path) -> StateStore:
    return StateStore(db_path=tmp_path / "state.db")


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Create a mock LLM client."""
    client = AsyncMock(spec=LLMClient)
    client.generate = AsyncMock(
        return_value=LLMResponse(text=SAMPLE_FEEDBACK, input_tokens=100, output_tokens=50)
    )
    return client
