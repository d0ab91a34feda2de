# run.py - Place this in the root directory
import os

from freelancer.app import create_app

app = create_app()

if __name__ == '__main__':
    print("Starting Freelancer API...")
    print(f"Database: {app.config['SQLALCHEMY_DATABASE_URI']}")
    print("Access the API at: http://localhost:5000")
    print("Press Ctrl+C to stop the server")
    print("-" * 50)

    app.run(
        debug=os.getenv('FLASK_DEBUG', 'True').lower() == 'true',
        host='127.0.0.1',
        port=5000
    )
