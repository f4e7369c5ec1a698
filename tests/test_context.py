"""Tests for transport contexts, settings and random sources."""

import numpy as np
import pytest

from lepton_mc.config.defaults import DEFAULT_ACCURACY, DEFAULT_EVENT_PRIORITY
from lepton_mc.config.enums import DecayMode, Event, RangePolicy, Scheme
from lepton_mc.config.loader import load_settings, parse_settings
from lepton_mc.core.context import Context, create_context, destroy_context
from lepton_mc.core.errors import CollaboratorError, ConfigurationError, ReturnCode
from lepton_mc.core.random import GeneratorSource
from lepton_mc.core.state import State
from lepton_mc.transport.engine import transport

from conftest import UniformGeometry


class TestContextDefaults:
    """Tests for context creation."""

    def test_defaults(self, muon_tables):
        context = create_context(muon_tables)
        assert context.scheme is Scheme.DETAILED
        assert context.forward
        assert not context.longitudinal
        assert context.decay is DecayMode.WEIGHT
        assert context.event == Event.NONE
        assert context.accuracy == DEFAULT_ACCURACY
        assert context.range_policy is RangePolicy.CLAMP
        assert context.event_priority == DEFAULT_EVENT_PRIORITY
        assert context.medium is None
        assert context.random is None

    def test_settings_keywords(self, muon_tables):
        context = create_context(muon_tables, scheme=Scheme.HYBRID,
                                 forward=False, kinetic_limit=1E+03)
        assert context.scheme is Scheme.HYBRID
        assert not context.forward
        assert context.kinetic_limit == 1E+03

    def test_unknown_setting(self, muon_tables):
        with pytest.raises(ConfigurationError):
            create_context(muon_tables, max_steps=10)

    def test_requires_tables(self):
        with pytest.raises(ConfigurationError):
            Context(None)

    def test_user_data(self, muon_tables, rock):
        data = {"medium": rock, "calls": 0}

        def resolver(context, state):
            context.user_data["calls"] += 1
            return context.user_data["medium"], 0.0

        context = create_context(muon_tables, user_data=data,
                                 scheme=Scheme.CSDA, medium=resolver,
                                 decay=DecayMode.DISABLED)
        assert context.user_data is data
        result = transport(context, State(1.0))
        assert result.event == Event.LIMIT_KINETIC
        assert data["calls"] > 0


class TestValidation:
    """Tests for configuration validation."""

    def test_valid(self, make_context, rock):
        make_context(UniformGeometry(rock)).validate()

    def test_missing_medium(self, muon_tables):
        context = create_context(muon_tables, scheme=Scheme.CSDA)
        with pytest.raises(ConfigurationError, match="medium"):
            context.validate()

    def test_collects_errors(self, make_context, rock):
        context = make_context(UniformGeometry(rock), accuracy=0.0,
                               distance_max=-1.0)
        with pytest.raises(ConfigurationError) as info:
            context.validate()
        message = str(info.value)
        assert "accuracy" in message
        assert "distance_max" in message
        assert info.value.code is ReturnCode.CONFIGURATION_ERROR

    def test_enabled_limit_requires_value(self, make_context, rock):
        context = make_context(UniformGeometry(rock), event=Event.LIMIT_TIME)
        with pytest.raises(ConfigurationError, match="time_max"):
            context.validate()

    def test_backward_decay_process(self, make_context, rock):
        context = make_context(UniformGeometry(rock), forward=False,
                               decay=DecayMode.PROCESS)
        with pytest.raises(ConfigurationError, match="forward"):
            context.validate()

    def test_stochastic_scheme_requires_random(self, muon_tables, rock):
        context = create_context(muon_tables, scheme=Scheme.HYBRID,
                                 medium=UniformGeometry(rock))
        with pytest.raises(ConfigurationError, match="random"):
            context.validate()

    def test_invalid_scheme(self, make_context, rock):
        context = make_context(UniformGeometry(rock), scheme="csda")
        with pytest.raises(ConfigurationError, match="scheme"):
            context.validate()

    def test_invalid_priority(self, make_context, rock):
        context = make_context(UniformGeometry(rock),
                               event_priority=(Event.LIMIT,))
        with pytest.raises(ConfigurationError, match="event_priority"):
            context.validate()

    def test_error_handler_notified(self, make_context, rock):
        calls = []
        context = make_context(UniformGeometry(rock), accuracy=2.0,
                               error_handler=lambda *args: calls.append(args))
        with pytest.raises(ConfigurationError):
            transport(context, State(10.0))
        assert len(calls) == 1
        code, origin, message = calls[0]
        assert code is ReturnCode.CONFIGURATION_ERROR
        assert origin.startswith("transport")
        assert "accuracy" in message


class TestContextLifetime:
    """Tests for cloning and destruction."""

    def test_clone(self, make_context, rock):
        context = make_context(UniformGeometry(rock), forward=False,
                               kinetic_limit=1E+02, user_data="first")
        clone = context.clone(user_data="second")
        assert clone.tables is context.tables
        assert not clone.forward
        assert clone.kinetic_limit == 1E+02
        assert clone.user_data == "second"
        assert context.user_data == "first"

        clone.configure(forward=True)
        assert not context.forward

    def test_clone_spawns_random(self, make_context, rock):
        context = make_context(UniformGeometry(rock), scheme=Scheme.HYBRID)
        clone = context.clone()
        assert isinstance(clone.random, GeneratorSource)
        assert clone.random is not context.random
        assert clone.random.generator is not context.random.generator
        draws = [context.uniform() for _ in range(5)]
        assert [clone.uniform() for _ in range(5)] != draws

    def test_clone_requires_random(self, muon_tables, rock):
        context = create_context(muon_tables, medium=UniformGeometry(rock),
                                 scheme=Scheme.HYBRID,
                                 random=lambda context: 0.5)
        with pytest.raises(ConfigurationError, match="random"):
            context.clone()

        source = GeneratorSource(seed=3)
        clone = context.clone(random=source)
        assert clone.random is source
        assert context.random(context) == 0.5

    def test_clone_without_random(self, csda_context):
        assert csda_context.clone().random is None

    def test_destroy(self, make_context, rock):
        context = make_context(UniformGeometry(rock), scheme=Scheme.CSDA)
        destroy_context(context)
        assert context.destroyed
        with pytest.raises(ConfigurationError, match="destroyed"):
            transport(context, State(10.0))


class TestGeneratorSource:
    """Tests for the numpy backed random source."""

    def test_range(self, source):
        values = np.array([source(None) for _ in range(1000)])
        assert np.all(values >= 0.0)
        assert np.all(values < 1.0)
        assert values.mean() == pytest.approx(0.5, abs=0.05)

    def test_seeded(self):
        first = GeneratorSource(seed=7)
        second = GeneratorSource(seed=7)
        assert [first() for _ in range(5)] == [second() for _ in range(5)]

    def test_spawn_independent(self):
        parent = GeneratorSource(seed=7)
        child = parent.spawn()
        assert [parent() for _ in range(5)] != [child() for _ in range(5)]

    @pytest.mark.parametrize("value", [1.0, -0.1, float("nan"), "half"])
    def test_invalid_variate(self, csda_context, value):
        csda_context.random = lambda context: value
        with pytest.raises(CollaboratorError) as info:
            csda_context.uniform()
        assert info.value.code is ReturnCode.RANDOM_ERROR


class TestSettingsLoader:
    """Tests for YAML settings."""

    def test_load(self, tmp_path, muon_tables):
        path = tmp_path / "backward.yaml"
        path.write_text(
            "scheme: hybrid\n"
            "forward: false\n"
            "longitudinal: true\n"
            "decay: disabled\n"
            "event: [limit_kinetic, medium]\n"
            "kinetic_limit: 1.0E+03\n"
            "range_policy: raise\n"
        )
        settings = load_settings(path)
        assert settings["scheme"] is Scheme.HYBRID
        assert settings["forward"] is False
        assert settings["event"] == Event.LIMIT_KINETIC | Event.MEDIUM
        assert settings["kinetic_limit"] == 1E+03
        assert settings["range_policy"] is RangePolicy.RAISE

        context = create_context(muon_tables, **settings)
        assert context.longitudinal
        assert context.decay is DecayMode.DISABLED

    def test_event_priority(self):
        settings = parse_settings({"event_priority": ["weight", "medium"]})
        assert settings["event_priority"] == (Event.WEIGHT, Event.MEDIUM)

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"steps": 10})

    def test_invalid_value(self):
        with pytest.raises(ConfigurationError, match="Available"):
            parse_settings({"scheme": "analog"})
        with pytest.raises(ConfigurationError):
            parse_settings({"event": ["boundary"]})

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- csda\n- hybrid\n")
        with pytest.raises(ConfigurationError):
            load_settings(path)
