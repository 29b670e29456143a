"""
POS API - cart, order aggregation and pricing for the point-of-sale terminal.

Layout:
    models/        SQLAlchemy entities (orders, cart lines, catalog, selections)
    repositories/  data access, including the aggregate order query
    services/      domain services and the live order feed
    routers/       thin FastAPI controllers
    main.py        application entry point
"""
