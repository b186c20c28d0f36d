"""dashbuild - Declarative dashboard authoring.

Compiles pages of charts, tables, text and inputs into a Quarto website
project:
- Tab groups from slash-delimited paths
- Client-side filter and visibility descriptions
- Site navigation and _quarto.yml config
"""

__version__ = "0.1.0"
