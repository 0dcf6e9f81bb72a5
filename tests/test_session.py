"""Tests for the session state machine driving interactive and one-shot runs."""

import pytest

from wc_envc.core.config import EnvcConfig
from wc_envc.core.crypto import Direction, EncryptionEngine
from wc_envc.core.errors import EnvcError, InputNotFoundError, OperationCancelled, PasswordMismatchError
from wc_envc.core.memory import Secret
from wc_envc.workflow import batch as batch_module
from wc_envc.workflow.batch import OverwritePolicy, Skipped, Written
from wc_envc.workflow.password import PasswordResolver
from wc_envc.workflow.session import TRANSITIONS, Session, SessionOptions, SessionState

from conftest import FAST_KDF, FakeStdin, ScriptedPrompter

S = SessionState
FULL_RUN = [S.IDLE, S.SELECTING, S.CONFIRMING, S.PASSWORD_ENTRY, S.PROCESSING, S.REPORTING, S.DONE]


class KeySpyEngine(EncryptionEngine):
    """Engine that remembers every key it derived."""

    def __init__(self):
        super().__init__(FAST_KDF)
        self.keys = []

    def derive_key(self, password):
        derived = super().derive_key(password)
        self.keys.append(derived)
        return derived


def _session(tmp_path, prompter, environ=None, **options):
    options.setdefault("working_dir", tmp_path)
    resolver = PasswordResolver(prompter, environ=environ or {}, stdin=FakeStdin(tty=prompter.interactive))
    engine = KeySpyEngine()
    session = Session(SessionOptions(**options), prompter, resolver=resolver, engine=engine)
    return session, engine


@pytest.fixture
def project(tmp_path):
    (tmp_path / ".env").write_text("DB_HOST=localhost\n")
    (tmp_path / ".env.local").write_text("# local\nDEBUG=1\nPORT=80\n")
    (tmp_path / "README.md").write_text("not an env file\n")
    return tmp_path


class TestInteractiveEncrypt:
    def test_all_files(self, project):
        prompter = ScriptedPrompter(choices=[0], confirms=[True, True], secrets=["pw", "pw"])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT, review_outputs=True)

        assert session.run() == 0
        assert session.history == FULL_RUN
        assert (project / ".env.enc").exists()
        assert (project / ".env.local.enc").exists()
        assert [w.variable_count for w in session.report.succeeded] == [1, 2]

    def test_gitignore_offer(self, project):
        (project / ".gitignore").write_text(".env\n")
        prompter = ScriptedPrompter(choices=[0], confirms=[True, True], secrets=["pw", "pw"])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT, review_outputs=True)
        session.run()

        assert "Add them to .gitignore?" in prompter.questions
        assert (project / ".gitignore").read_text().splitlines()[-1] == ".env.local"
        assert (project / ".gitignore").read_text().count(".env\n") == 1

    def test_env_var_tip_after_prompted_password(self, project):
        prompter = ScriptedPrompter(choices=[0], confirms=[True, False], secrets=["pw", "pw"])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT, review_outputs=True)
        session.run()
        assert any("export WC_ENVC_PASSWORD" in m for m in prompter.said("info"))

    def test_select_individual_files(self, project):
        prompter = ScriptedPrompter(choices=[1], multi_choices=[[1]], confirms=[True, False], secrets=["pw", "pw"])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT, review_outputs=True)

        assert session.run() == 0
        assert session.selected == [project / ".env.local"]
        assert not (project / ".env.enc").exists()

    def test_quit(self, project):
        prompter = ScriptedPrompter(choices=[2])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT)

        assert session.run() == 1
        assert session.history == [S.IDLE, S.SELECTING, S.ABORTED]
        assert isinstance(session.error, OperationCancelled)

    def test_nothing_picked(self, project):
        prompter = ScriptedPrompter(choices=[1], multi_choices=[[]])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT)
        assert session.run() == 1
        assert session.state is S.ABORTED

    def test_no_candidates(self, tmp_path):
        session, _ = _session(tmp_path, ScriptedPrompter(), direction=Direction.DECRYPT)
        assert session.run() == 1
        assert "No encrypted .env files found" in session.error.message

    def test_review_declined(self, project):
        prompter = ScriptedPrompter(choices=[0], confirms=[False])
        session, engine = _session(project, prompter, direction=Direction.ENCRYPT, review_outputs=True)
        assert session.run() == 1
        assert session.history[-2:] == [S.CONFIRMING, S.ABORTED]
        assert engine.keys == []


class TestConfirming:
    def test_declined_overwrite_skips_only_that_file(self, project):
        (project / ".env.enc").write_text("keep me")
        prompter = ScriptedPrompter(choices=[0], confirms=[False, False], secrets=["pw", "pw"])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT)

        assert session.run() == 1
        assert session.state is S.DONE
        assert (project / ".env.enc").read_text() == "keep me"
        assert [type(o) for o in session.report.outcomes] == [Skipped, Written]

    def test_every_overwrite_declined_aborts(self, project):
        (project / ".env.enc").write_text("keep me")
        prompter = ScriptedPrompter(confirms=[False])
        session, engine = _session(project, prompter, direction=Direction.ENCRYPT, files=[project / ".env"])

        assert session.run() == 1
        assert session.history == [S.IDLE, S.SELECTING, S.CONFIRMING, S.ABORTED]
        assert engine.keys == []

    def test_accepted_overwrite_is_not_asked_twice(self, project):
        (project / ".env.enc").write_text("old")
        prompter = ScriptedPrompter(confirms=[True, False], secrets=["pw", "pw"])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT, files=[project / ".env"])

        assert session.run() == 0
        assert prompter.questions.count(f"File {project / '.env.enc'} already exists. Overwrite?") == 1


class TestOneShot:
    def test_missing_preselected_file(self, tmp_path):
        session, _ = _session(
            tmp_path, ScriptedPrompter(), direction=Direction.ENCRYPT, files=[tmp_path / ".env"],
        )
        assert session.run() == 1
        assert isinstance(session.error, InputNotFoundError)

    def test_explicit_output(self, project):
        out = project / "secrets.enc"
        session, _ = _session(
            project, ScriptedPrompter(interactive=False), direction=Direction.ENCRYPT,
            files=[project / ".env"], output=out, password="pw", overwrite=OverwritePolicy.REFUSE,
        )
        assert session.run() == 0
        assert out.exists()

    def test_output_requires_single_file(self, project):
        with pytest.raises(ValueError):
            SessionOptions(Direction.ENCRYPT, files=[project / ".env", project / ".env.local"], output=project / "x")

    def test_refuse_existing_output(self, project):
        (project / ".env.enc").write_text("keep me")
        session, _ = _session(
            project, ScriptedPrompter(interactive=False), direction=Direction.ENCRYPT,
            files=[project / ".env"], password="pw", overwrite=OverwritePolicy.REFUSE,
        )
        assert session.run() == 1
        assert session.state is S.DONE
        assert (project / ".env.enc").read_text() == "keep me"

    def test_no_gitignore_offer_without_terminal(self, project):
        session, _ = _session(
            project, ScriptedPrompter(interactive=False), direction=Direction.ENCRYPT,
            files=[project / ".env"], password="pw", overwrite=OverwritePolicy.REFUSE,
        )
        session.run()
        assert not (project / ".gitignore").exists()

    def test_password_from_environment(self, project):
        prompter = ScriptedPrompter(interactive=False)
        session, _ = _session(
            project, prompter, environ={"WC_ENVC_PASSWORD": "pw"}, direction=Direction.ENCRYPT,
            files=[project / ".env"], overwrite=OverwritePolicy.REFUSE,
        )
        assert session.run() == 0
        assert not any("Tip:" in m for m in prompter.said("info"))


class TestPasswordEntry:
    def test_password_failure_aborts_run(self, project):
        prompter = ScriptedPrompter(secrets=["a", "b", "c", "d", "e", "f"])
        session, _ = _session(project, prompter, direction=Direction.ENCRYPT, files=[project / ".env"])

        assert session.run() == 1
        assert session.history[-2:] == [S.PASSWORD_ENTRY, S.ABORTED]
        assert isinstance(session.error, PasswordMismatchError)
        assert not (project / ".env.enc").exists()


class TestSecretLifetime:
    def test_key_wiped_after_processing(self, project):
        session, engine = _session(
            project, ScriptedPrompter(interactive=False), direction=Direction.ENCRYPT,
            files=[project / ".env"], password="pw", overwrite=OverwritePolicy.REFUSE,
        )
        session.run()
        assert len(engine.keys) == 1
        assert engine.keys[0].is_wiped

    def test_key_wiped_on_interrupt(self, project, monkeypatch):
        def interrupted(self, jobs, direction, report=None):
            raise KeyboardInterrupt

        monkeypatch.setattr(batch_module.BatchWorkflow, "run", interrupted)
        session, engine = _session(
            project, ScriptedPrompter(interactive=False), direction=Direction.ENCRYPT,
            files=[project / ".env"], password="pw", overwrite=OverwritePolicy.REFUSE,
        )
        with pytest.raises(KeyboardInterrupt):
            session.run()
        assert engine.keys[0].is_wiped
        assert not (project / ".env.enc").exists()


class TestTransitions:
    def test_illegal_transition_rejected(self, tmp_path):
        session, _ = _session(tmp_path, ScriptedPrompter(), direction=Direction.ENCRYPT)
        with pytest.raises(RuntimeError):
            session._transition(S.PROCESSING)

    def test_terminal_states_have_no_exits(self):
        assert TRANSITIONS[S.DONE] == frozenset()
        assert TRANSITIONS[S.ABORTED] == frozenset()

    def test_processing_errors_are_not_swallowed(self, project, monkeypatch):
        def exploding(self, jobs, direction, report=None):
            raise EnvcError("boom")

        monkeypatch.setattr(batch_module.BatchWorkflow, "run", exploding)
        session, _ = _session(
            project, ScriptedPrompter(interactive=False), direction=Direction.ENCRYPT,
            files=[project / ".env"], password="pw", overwrite=OverwritePolicy.REFUSE,
        )
        with pytest.raises(EnvcError, match="boom"):
            session.run()


class TestDatabaseConfigScenario:
    def test_encrypt_with_mypassword(self, tmp_path, engine):
        source = tmp_path / ".env"
        source.write_text("# Database Config\nDB_HOST=localhost\nDB_PASSWORD=secret_123\n")
        session, _ = _session(
            tmp_path, ScriptedPrompter(interactive=False), direction=Direction.ENCRYPT,
            files=[source], password="mypassword", overwrite=OverwritePolicy.REFUSE,
        )
        assert session.run() == 0

        lines = (tmp_path / ".env.enc").read_text().splitlines()
        assert lines[0] == "# Database Config"
        assert lines[1].startswith("DB_HOST=")
        assert lines[2].startswith("DB_PASSWORD=")

        host, password = lines[1].split("=", 1)[1], lines[2].split("=", 1)[1]
        with engine.derive_key(Secret("mypassword")) as key:
            assert engine.decrypt_value(host, key) == "localhost"
            assert engine.decrypt_value(password, key) == "secret_123"
        with engine.derive_key(Secret("not-mypassword")) as wrong:
            assert not engine.can_decrypt(host, wrong)
            assert not engine.can_decrypt(password, wrong)


class TestDefaults:
    def test_uses_process_config(self, fast_config, tmp_path):
        session = Session(SessionOptions(Direction.ENCRYPT, working_dir=tmp_path), ScriptedPrompter())
        assert session.config is fast_config
        assert isinstance(EnvcConfig.get_instance(), EnvcConfig)
