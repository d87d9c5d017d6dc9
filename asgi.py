from bunkerdesk import create_app

app = create_app()
