# run.py
import os
from certapi.app import create_app

# Starts the development server directly instead of going through 'flask run'.

if __name__ == "__main__":
    os.environ.setdefault('FLASK_APP', 'certapi.app')
    os.environ.setdefault('FLASK_CONFIG', 'development')

    app = create_app(os.environ['FLASK_CONFIG'])

    print("=" * 60)
    print(">>> Starting certificate request API")
    print(f">>> Config: {os.environ['FLASK_CONFIG']}, database: {app.config['SQLALCHEMY_DATABASE_URI']}")
    print("=" * 60)

    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
