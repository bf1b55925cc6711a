"""
Applications. Run the loader with: python -m apps.loader
"""
