import click
from quickbite import create_app, db
from quickbite.services import accounts
from quickbite.services.accounts import AccountError
from config import DevelopmentConfig
from setup_db import seed_sample_data

app = create_app(DevelopmentConfig)


@app.cli.command()
def setup_db():
    """Setup database and create tables"""
    db.create_all()
    print("Database tables created!")


@app.cli.command()
def seed():
    """Insert demo stores and meals"""
    if seed_sample_data():
        print("Sample stores and meals created!")
    else:
        print("Database already has stores. Skipping seed.")


@app.cli.command('confirm-admin')
@click.option('--email', required=True)
@click.option('--password', required=True, prompt=True, hide_input=True)
def confirm_admin(email, password):
    """Create or update an allow-listed admin account"""
    try:
        user = accounts.confirm_admin(email, password)
    except AccountError as e:
        db.session.rollback()
        raise click.ClickException(e.message)
    print(f"Admin account ready: {user.email}")


if __name__ == '__main__':
    app.run()
