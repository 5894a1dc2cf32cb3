"""Sphinx configuration for Lost Pets API documentation."""

import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.abspath(".."))

project = "Lost Pets API"
current_year = datetime.now().year
copyright = f"{current_year}, Lost Pets"
author = "Lost Pets Team"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
]

autodoc_mock_imports = ["algoliasearch", "cloudinary", "fastapi_mail"]

templates_path = ["_templates"]
exclude_patterns: list[str] = []

html_theme = "alabaster"
