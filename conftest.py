"""Pytest configuration for root."""

import os
import sys

# Flat layout: make config/api/core importable without installing
sys.path.append(os.path.dirname(os.path.abspath(__file__)))
