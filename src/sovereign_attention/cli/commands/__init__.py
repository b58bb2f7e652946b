"""
Command modules for the sap CLI.
"""
