"""Runtime settings, read from the environment (and a local .env file)."""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

QUESTIONS_PATH = os.getenv("PERSONA_QUESTIONS_PATH", "data/questions.json")
ARCHETYPES_PATH = os.getenv("PERSONA_ARCHETYPES_PATH", "data/archetypes.json")
LOG_DIR = os.getenv("PERSONA_LOG_DIR", "data/logs")

# "counts" (coverage-adjusted) or "fixed" (max-magnitude divisor)
NORMALIZATION = os.getenv("PERSONA_NORMALIZATION", "counts")

MIN_N = int(os.getenv("PERSONA_MIN_N", "20"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ANSWER_LOG_PATH = os.path.join(LOG_DIR, "answers.csv")
RESULT_LOG_PATH = os.path.join(LOG_DIR, "results.csv")


def configure_logging(level=None):
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
