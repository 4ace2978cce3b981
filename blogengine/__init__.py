"""BlogEngine comment moderation API."""
