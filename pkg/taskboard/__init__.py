# Task board engine: tenant-scoped boards of typed, ordered tasks
#
# Components:
#   schema.py       - Data model (Board, Column, Group, Task, FieldValue, BoardView)
#   store.py        - SQLite persistence layer and leaf-first cascades
#   access.py       - View/edit rights per actor
#   columns.py      - Column registry and default columns per board type
#   fields.py       - Typed field values: validation, upsert, cell rendering
#   tasks.py        - Ordered tasks within a group
#   groups.py       - Ordered, collapsible groups
#   boards.py       - Board CRUD, membership and the composed board view
#   aggregate.py    - Stage counts per STATUS option
#   view_filter.py  - Search-box filter over groups
#   activity.py     - Per-task audit trail
#   local_state.py  - Client-side board state with optimistic field edits
#   engine.py       - Wires everything around one store
