from pickem_pool import create_app, db
from pickem_pool.models import AdminAction, Game, Pick, Season, User, WeeklyScore

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Season": Season,
        "Game": Game,
        "Pick": Pick,
        "WeeklyScore": WeeklyScore,
        "AdminAction": AdminAction,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
