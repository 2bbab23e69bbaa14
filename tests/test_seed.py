from xfin import db
from xfin.seed import DEMO_EMAIL, seed_demo


class TestSeedDemo:
    def test_seed_is_idempotent(self, app):
        with app.app_context():
            assert seed_demo() is True
            assert seed_demo() is False
            users = db.query_db("SELECT id FROM users WHERE email=?", (DEMO_EMAIL,))
            assert len(users) == 1
            txs = db.query_db("SELECT COUNT(*) AS count FROM transactions WHERE user_id=?", (users[0]["id"],), one=True)
            assert txs["count"] == 6

    def test_demo_user_can_log_in(self, app, client):
        with app.app_context():
            seed_demo()
        resp = client.post("/api/v1/auth/login", json={"email": "demo@xfin.com", "password": "demo123"})
        assert resp.status_code == 200

    def test_cli_command(self, app):
        result = app.test_cli_runner().invoke(args=["seed-demo"])
        assert result.exit_code == 0
        assert "demo@xfin.com" in result.output

    def test_init_db_command(self, app):
        result = app.test_cli_runner().invoke(args=["init-db"])
        assert result.exit_code == 0
        assert "Database initialized" in result.output
