"""
The gwsadmin commands, one Typer app per command group.
"""
