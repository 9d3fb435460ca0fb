"""Tests for the Family Hub API."""
