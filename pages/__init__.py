"""Streamlit page modules for the Fuel Point Management System.

Each module exposes ``render()``; fuel_app_ui.py picks one from the sidebar.
"""
