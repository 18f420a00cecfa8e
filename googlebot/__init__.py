"""Matrix bot that answers !google image <text> with an image from Google."""
