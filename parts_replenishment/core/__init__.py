# parts_replenishment/core/__init__.py
"""Decision engine components. Import from the submodules directly."""
