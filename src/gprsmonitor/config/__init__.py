"""
A simple configuration helper built on top of ConfigObj that allows configuration files to be
layered - default / os-specific / user / local, with a schema to validate the types of the config data.
"""
