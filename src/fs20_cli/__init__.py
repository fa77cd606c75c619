#!/usr/bin/env python3
"""A CLI for the fs20_rf library."""
