# tkan: terminal kanban board with pointer drag-and-drop
#
# Components:
#   schema.py    - Board model (Card, Column, Board) and its invariants
#   view.py      - View state (selection, archive and detail toggles)
#   geometry.py  - Terminal coordinate -> column / card / insertion slot
#   gesture.py   - Press/motion/release state machine (click vs drag)
#   reorder.py   - Card move engine (same-column and cross-column)
#   session.py   - Event-loop glue: board + view + gestures + backend
#   store.py     - YAML board file backend
#   github.py    - GitHub Projects backend
#   projects.py  - Local project discovery
#   events.py    - Event bridge for move/persistence notifications
#   render.py    - Text renderer for the board view
#   app.py       - Textual application (input source)
#   config.py    - YAML configuration
#   cli.py       - Command-line entry point

__version__ = "0.3.0"
