"""Collaborator contracts (`base`) and the settings-driven factory (`manager`)."""
