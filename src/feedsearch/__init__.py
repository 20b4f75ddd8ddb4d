"""Semantic search over feed posts with a Wikipedia fallback."""

from dotenv import load_dotenv

# Load environment variables from .env before config.py reads os.environ.
load_dotenv()
