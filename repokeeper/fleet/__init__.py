"""Repository listing and license management for an owner's fleet."""
