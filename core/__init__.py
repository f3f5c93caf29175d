"""
Audit Protocol core: constants, configuration, knowledge base, console and
the wiring that builds one protocol instance.
"""
