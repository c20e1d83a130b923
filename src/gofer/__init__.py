"""Gopher protocol translation and single-instance gateway."""
