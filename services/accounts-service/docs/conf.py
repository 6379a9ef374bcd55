"""Sphinx configuration for the Accounts Service documentation."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

SERVICE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(SERVICE_DIR))

from accounts_service.config import Settings  # noqa: E402

project = "Accounts Service"
author = "Platform Team"
copyright = f"{datetime.now():%Y}, {author}"
release = version = Settings.version

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.intersphinx",
    "sphinx.ext.napoleon",
    "sphinx_autodoc_typehints",
]

# Docstrings in this service use NumPy-style "Parameters" / "Raises" sections.
napoleon_google_docstring = False
napoleon_numpy_docstring = True
napoleon_use_rtype = False

autodoc_member_order = "bysource"
autodoc_typehints = "description"
autodoc_mock_imports = ["psycopg", "psycopg_pool", "bcrypt", "jinja2", "prometheus_client"]

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "psycopg": ("https://www.psycopg.org/psycopg3/docs/", None),
}

exclude_patterns: list[str] = ["_build"]
html_theme = "alabaster"
