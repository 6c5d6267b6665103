"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py db upgrade
    flask --app run.py create-admin
    flask --app run.py --debug run

"""

from typing_center import create_app

# WSGI application object. `flask run` looks for this `app` variable.
app = create_app()

if __name__ == "__main__":
    # Direct `python run.py` usage is for development only; use a WSGI server in production.
    app.run(debug=True)
