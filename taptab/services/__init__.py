"""
                        Services Module

Business logic of the menu builder. Services with an external dependency
have a mock (development) and a real (staging/production) implementation
selected by ENV_MODE:

    - backend: menu persistence (in-memory / SQL / HTTP client)
    - billing: Stripe subscriptions and webhooks
    - menu_cache: persisted full-menu copies (in-process / Redis)

Pure services:
    - editor: query cache and optimistic mutations
    - short_links, public_menu, full_menu, menu_filter, pricing, theme
    - subscriptions, storage, qr, spreadsheet
"""
