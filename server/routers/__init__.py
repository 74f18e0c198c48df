"""HTTP routers for the Hanabi game server."""
