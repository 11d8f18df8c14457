"""Vehicle waypoint graph authoring."""
