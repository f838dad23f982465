"""Module catalog: modules, scenarios and scripted Socratic questions."""
