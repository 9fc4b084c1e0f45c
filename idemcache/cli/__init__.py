"""Command-line interface for idemcache."""
