"""Submission state transitions and the commands they emit."""
