# File: captioner/core/database/base.py

from sqlalchemy.orm import declarative_base

# The shared registry. Every persisted model (e.g. the analysis cache) inherits from this.
Base = declarative_base()
