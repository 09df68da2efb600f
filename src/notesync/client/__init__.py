"""Client module - Workstation sync tool and optimistic note store."""
