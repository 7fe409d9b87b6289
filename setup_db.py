import os
from quickbite import create_app, db
from config import DevelopmentConfig, ProductionConfig

SAMPLE_STORES = [
    {
        'name': "Mang Juan's Kitchen",
        'description': 'Home-cooked Filipino favorites prepared fresh daily.',
        'category': 'Filipino',
        'meals': [
            ('Chicken Adobo', 'Classic Filipino chicken adobo with rice', '85.00', 'Main Dish'),
            ('Pork Sinigang', 'Sour tamarind soup with tender pork', '95.00', 'Main Dish'),
            ('Lumpiang Shanghai', 'Crispy spring rolls (8 pcs)', '50.00', 'Sides'),
            ('Iced Tea', 'House-blend iced tea', '25.00', 'Drinks'),
        ],
    },
    {
        'name': 'Fresh Bites Cafe',
        'description': 'Salads, wraps and smoothie bowls.',
        'category': 'Healthy',
        'meals': [
            ('Garden Salad Bowl', 'Fresh greens with grilled chicken', '95.00', 'Salads'),
            ('Chicken Wrap', 'Grilled chicken in whole wheat wrap', '85.00', 'Wraps'),
            ('Green Smoothie', 'Spinach, banana and apple blend', '75.00', 'Drinks'),
        ],
    },
    {
        'name': 'Burger Station',
        'description': 'Burgers, fries and milkshakes.',
        'category': 'Fast Food',
        'meals': [
            ('Classic Cheeseburger', 'Beef patty with cheddar cheese', '95.00', 'Burgers'),
            ('Crispy Fries', 'Golden potato fries', '45.00', 'Sides'),
            ('Vanilla Milkshake', 'Creamy vanilla shake', '65.00', 'Drinks'),
        ],
    },
    {
        'name': 'Noodle House',
        'description': 'Ramen, pad thai and pho.',
        'category': 'Asian',
        'meals': [
            ('Tonkotsu Ramen', 'Rich pork bone broth with chashu', '145.00', 'Ramen'),
            ('Pad Thai', 'Stir-fried rice noodles Thai style', '110.00', 'Thai'),
            ('Gyoza', 'Japanese dumplings (6 pcs)', '65.00', 'Sides'),
        ],
    },
]


def seed_sample_data():
    """Insert demo stores and meals; returns False when stores already exist"""
    from quickbite.models.models import Store, Meal
    from decimal import Decimal

    if Store.query.first():
        return False

    for sample in SAMPLE_STORES:
        store = Store(
            name=sample['name'],
            description=sample['description'],
            category=sample['category'],
            is_active=True,
        )
        for name, description, price, category in sample['meals']:
            store.meals.append(Meal(
                name=name,
                description=description,
                price=Decimal(price),
                category=category,
                is_available=True,
            ))
        db.session.add(store)

    db.session.commit()
    return True


def setup_database():
    """Setup database based on environment"""
    env = os.environ.get('FLASK_ENV', 'development')

    if env == 'production':
        app = create_app(ProductionConfig)
        print("Setting up production database...")
    else:
        app = create_app(DevelopmentConfig)
        print("Setting up development database...")

    with app.app_context():
        try:
            # Create all tables
            db.create_all()
            print("Database tables created successfully!")

            if seed_sample_data():
                print("Sample stores and meals created!")
            else:
                print("Database already has stores. Skipping seed.")

        except Exception as e:
            print(f"Error setting up database: {e}")
            db.session.rollback()
            raise


if __name__ == '__main__':
    setup_database()
