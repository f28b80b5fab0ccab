# seed.py
# Recreates the database and seeds demo accounts for local development.

from flask.cli import with_appcontext
import click

from certapi.models import db, User, UserType

DEMO_USERS = [
    {
        'wallet_address': '0xdemoorganization000000000000000000000001',
        'name': 'Demo University',
        'user_type': UserType.ORGANIZATION,
        'email': 'registrar@demo-university.example',
        'password': 'organization_password',
    },
    {
        'wallet_address': '0xdemostudent0000000000000000000000000001',
        'name': 'Demo Student',
        'user_type': UserType.STUDENT,
        'email': 'student@demo-university.example',
        'password': 'student_password',
    },
]


def seed_users():
    for user_data in DEMO_USERS:
        data = dict(user_data)
        password = data.pop('password')
        if not User.query.filter_by(wallet_address=data['wallet_address']).first():
            user = User(**data)
            user.set_password(password)
            db.session.add(user)
    db.session.commit()
    click.echo("Demo users seeded.")


@click.command('seed-db')
@click.option('--no-demo', is_flag=True, help='Only recreate the tables, without demo accounts.')
@with_appcontext
def seed_command(no_demo):
    """Drops and recreates every table, then seeds demo accounts."""
    db.drop_all()
    db.create_all()
    click.echo("Database tables dropped and recreated.")

    if not no_demo:
        seed_users()

    click.echo("Database seeding completed.")
