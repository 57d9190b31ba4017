"""Serverless entrypoint that merges a list of images into one PNG.

POST a JSON body such as::

    {"images": [{"src": "https://..."}, {"src": "data:image/png;base64,..."}],
     "perRow": 2, "gap": 10, "padding": 5, "background": "#ffffff"}

and get back the merged PNG, or ``{"width", "height", "dataUrl"}`` when the
body sets ``"output": "json"``.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from collage.config import Settings
from collage.handler import handle_event

load_dotenv()
settings = Settings.from_env()
logging.basicConfig(level=settings.log_level_value)


def handler(event, context=None):
    """Serverless function handler."""
    return handle_event(event, settings=settings)
