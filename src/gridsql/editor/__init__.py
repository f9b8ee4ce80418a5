"""Editable table support.

Fields, row joins and option providers composed by an ``EditorHost`` to read
rows in client shape and write submitted data back.
"""

from gridsql.editor.field import Field
from gridsql.editor.host import EditorHost
from gridsql.editor.join import Join, Mjoin
from gridsql.editor.options import Options, compare_labels, sort_by_label
from gridsql.editor.search_builder_options import SearchBuilderOptions
from gridsql.editor.search_pane_options import SearchPaneOptions

__all__ = [
    "Field",
    "EditorHost",
    "Join",
    "Mjoin",
    "Options",
    "SearchPaneOptions",
    "SearchBuilderOptions",
    "compare_labels",
    "sort_by_label",
]
