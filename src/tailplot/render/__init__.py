"""Rendering: pure conversion of a view and a store snapshot into a frame."""
