"""Tests for :mod:`mongosession`."""
