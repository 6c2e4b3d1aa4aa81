"""Make-ready operations briefing built from Equips service requests."""
