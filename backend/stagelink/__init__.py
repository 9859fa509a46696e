"""StageLink booking API: availability, booking requests and contract proposals."""
