"""Game Bridge - save-data and purchase verification service for the game client."""
