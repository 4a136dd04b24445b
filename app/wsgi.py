from app.trekker import create_app

app = create_app()
