from app import create_app, db
from app.models import BettingRound, Fixture, Profile, Season, SeasonWinner, UserBet

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Season": Season,
        "Fixture": Fixture,
        "BettingRound": BettingRound,
        "UserBet": UserBet,
        "Profile": Profile,
        "SeasonWinner": SeasonWinner,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
