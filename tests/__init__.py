"""Tests for workerflow."""
