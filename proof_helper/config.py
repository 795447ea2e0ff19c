"""Configuration for the proof helper.

Model selection, provider credentials, sampling settings, and loop thresholds.
All tunable settings can be overridden via environment variables (.env recommended).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")

# ============================================================================
# Environment variable names
# ============================================================================

# Credentials and model overrides are looked up by name at resolution time so a
# single process can host engines configured differently.
OPENAI_API_KEY_VAR = "OPENAI_API_KEY"
GEMINI_API_KEY_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
ANTHROPIC_API_KEY_VAR = "ANTHROPIC_API_KEY"

MODEL_OVERRIDE_VAR = "PROOF_HELPER_MODEL"
REASONING_EFFORT_VAR = "GPT5_REASONING_EFFORT"
OPENAI_BASE_URL_VARS = ("OPENAI_BASE_URL", "PROOF_HELPER_OPENAI_BASE_URL")

# ============================================================================
# Models
# ============================================================================

OPENAI_TAG = "openai:"
ANTHROPIC_TAG = "anthropic:"

DEFAULT_GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-pro")
DEFAULT_OPENAI_MODEL = "gpt-5-nano-2025-08-07"

# Model-name prefixes served by the Responses API with reasoning.effort
REASONING_MODEL_PREFIXES = ("gpt-5", "o1", "o3", "o4")

REASONING_EFFORTS = ("low", "medium", "high")
DEFAULT_REASONING_EFFORT = "low"

# ============================================================================
# Sampling
# ============================================================================

TEMPERATURE = float(os.getenv("PROOF_HELPER_TEMPERATURE", "0.1"))
TOP_P = float(os.getenv("PROOF_HELPER_TOP_P", "1.0"))
GEMINI_THINKING_BUDGET = int(os.getenv("GEMINI_THINKING_BUDGET", "32768"))
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "32000"))

# ============================================================================
# Transport retries (1 = no retry; only transient transport errors are retried)
# ============================================================================

GENERATION_ATTEMPTS = max(1, int(os.getenv("PROOF_HELPER_GENERATION_ATTEMPTS", "1")))
RETRY_INITIAL_WAIT_S = float(os.getenv("PROOF_HELPER_RETRY_INITIAL_WAIT", "1"))
RETRY_MAX_WAIT_S = float(os.getenv("PROOF_HELPER_RETRY_MAX_WAIT", "8"))

# ============================================================================
# Convergence control
# ============================================================================

SUCCESS_THRESHOLD = 5
FAILURE_THRESHOLD = 10
MAX_ITERATIONS = 30
DEFAULT_MAX_RUNS = 10

# ============================================================================
# Paths
# ============================================================================

RUNS_SUBDIR = Path(".econ") / "proof-runs"
RUNS_DIR = os.getenv("PROOF_HELPER_RUNS_DIR")

PROBLEM_FILENAMES = (
    "problem_statement.txt",
    "problem.txt",
    "problem.md",
    "PROBLEM.md",
    "statement.txt",
    "statement.md",
)

PROBLEM_FILE = "problem.txt"
OTHER_PROMPTS_JSON = "other_prompts.json"
OTHER_PROMPTS_MD = "other_prompts.md"
LOG_FILE = "log.txt"
SOLUTION_FILE = "solution.md"

# ============================================================================
# Logging
# ============================================================================

LOG_LEVEL = os.getenv("PROOF_HELPER_LOG_LEVEL", "INFO")
