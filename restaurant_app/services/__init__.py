"""
Services package: reservations, menu and notifications.
"""
