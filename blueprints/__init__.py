"""
Blueprint registration for Homework Helper.

Blueprints carry their full /api paths, so none is registered with a prefix.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.homework import bp as homework_bp
    from blueprints.submissions import bp as submissions_bp
    from blueprints.sessions import bp as sessions_bp
    from blueprints.vocabulary import bp as vocabulary_bp
    from blueprints.gamification import bp as gamification_bp

    app.register_blueprint(homework_bp)
    app.register_blueprint(submissions_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(vocabulary_bp)
    app.register_blueprint(gamification_bp)
