# File: media_server/core/database/base.py

from sqlalchemy.orm import declarative_base

# The shared registry. Feature models (duplicate index) inherit from this.
Base = declarative_base()
