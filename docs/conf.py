extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.intersphinx",
]

autoclass_content = "both"
autodoc_member_order = "bysource"

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "sqlalchemy": ("https://docs.sqlalchemy.org/en/20", None),
}

source_suffix = ".rst"
master_doc = "index"

project = "batchloader"
copyright = "2024, batchloader authors"
author = "batchloader authors"

templates_path = []

html_theme = "furo"
html_static_path = ["_static"]
html_theme_options = {}
