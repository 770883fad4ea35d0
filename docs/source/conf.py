# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# add project root to sys.path for autodoc
import os
import sys

sys.path.insert(0, os.path.abspath('../..'))

# -- Project information -----------------------------------------------------

project = 'SheetReviewer'
copyright = '2025, Gergely Wootsch'
author = 'Gergely Wootsch'
release = '0.1.0'

# -- General configuration ---------------------------------------------------

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
]

napoleon_google_docstring = True
napoleon_use_param = False
napoleon_use_ivar = False

exclude_patterns = []

autodoc_default_options = {
    'member-order': 'bysource',
    'show-inheritance': True,
}

# -- Options for HTML output -------------------------------------------------

html_theme = 'furo'
highlight_language = 'python'

html_baseurl = 'https://github.com/wgergely/SheetReviewer'
html_context = {
    'display_github': True,
    'github_user': 'wgergely',
    'github_repo': 'SheetReviewer',
    'github_version': 'main',
    'conf_py_path': '/docs/source',
}
