"""
Vercel Serverless Function Entry Point for the Shorebreak Analytics API
"""
import sys
from pathlib import Path

# Add backend to Python path
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from main import app  # noqa: E402

handler = app
