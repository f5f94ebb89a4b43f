"""Implementation modules for cargo-samply."""
