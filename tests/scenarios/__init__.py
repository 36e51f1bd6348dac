"""End-to-end bootstrap scenarios against a scripted host."""
