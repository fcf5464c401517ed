# Third-party
import brian2.units as b2u
import numpy as np
import pytest
from pydantic import ValidationError

# Local
from phototransduction.data_io.config_io import Configuration
from phototransduction.parameters.param_validation import (
    ParameterRecord,
    PhotoreceptorParameters,
    SimulationParameters,
    validate_params,
)


@pytest.fixture
def raw_config():
    return Configuration(
        {
            "photoreceptor_parameters": {"mode": "linear", "sigma": 10, "k": 0.01},
            "simulation_parameters": {"duration_seconds": 0.5, "dt_seconds": 0.001},
            "run": {"simulate_photoreceptor": False, "profile": False},
        }
    )


class TestParameterRecord:
    def test_arrays_are_copied_and_read_only(self):
        tvec = np.arange(5) * 0.1
        record = ParameterRecord(tme=tvec, stm=[0, 1, 0, 0, 0])

        assert record.tme.dtype == float
        assert record.stm.dtype == float
        assert not record.tme.flags.writeable
        assert tvec.flags.writeable
        with pytest.raises(ValueError):
            record.stm[0] = 3.0

    def test_record_is_frozen(self):
        record = ParameterRecord(tme=[0.0, 1.0], stm=[0.0, 0.0])

        with pytest.raises(ValidationError):
            record.gamma = 1.0

    def test_defaults_are_cone_parameters(self):
        record = ParameterRecord(tme=[0.0, 1.0], stm=[0.0, 0.0])

        assert record.mode == "nonlinear"
        assert record.sigma == 22.0
        assert record.eta == 2000.0
        assert record.n == 3.0

    def test_time_quantity_is_converted_to_seconds(self):
        record = ParameterRecord(tme=np.arange(3) * b2u.ms, stm=np.zeros(3))

        np.testing.assert_allclose(record.tme, [0.0, 0.001, 0.002])

    def test_time_quantity_with_wrong_unit(self):
        with pytest.raises(ValidationError):
            ParameterRecord(tme=np.arange(3) * b2u.metre, stm=np.zeros(3))

    def test_dark_current_quantity_is_converted_to_pA(self):
        record = ParameterRecord(tme=[0.0, 1.0], stm=[0.0, 0.0], darkCurrent=0.05 * b2u.nA)

        assert record.darkCurrent == pytest.approx(50.0)

    def test_two_dimensional_stimulus_rejected(self):
        with pytest.raises(ValidationError):
            ParameterRecord(tme=[0.0, 1.0], stm=[[0.0, 0.0]])

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            ParameterRecord(tme=[0.0, 1.0], stm=[0.0, 0.0], mode="quadratic")

    @pytest.mark.parametrize(
        "field", ["sigma", "phi", "eta", "cdark", "beta", "hillaffinity", "hillcoef"]
    )
    def test_rates_and_hill_constants_must_be_positive(self, field):
        with pytest.raises(ValidationError, match=field):
            ParameterRecord(tme=[0.0, 1e-4, 2e-4], stm=[0.0, 0.0, 0.0], **{field: 0.0})

    def test_gamma_must_not_be_negative(self):
        record = ParameterRecord(tme=[0.0, 1.0], stm=[0.0, 0.0], gamma=0.0)

        assert record.gamma == 0.0
        with pytest.raises(ValidationError, match="gamma"):
            record.with_gamma(-1.0)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ParameterRecord(tme=[0.0, 1.0], stm=[0.0, 0.0], betaSlow=0.4)

    def test_length_mismatch_is_not_a_validation_error(self):
        # Lengths are checked by the simulation, not here
        record = ParameterRecord(tme=[0.0, 1.0, 2.0], stm=[0.0])

        assert record.stm.shape == (1,)

    def test_with_gamma_returns_copy(self):
        record = ParameterRecord(tme=[0.0, 1.0], stm=[0.0, 0.0], gamma=10.0)
        updated = record.with_gamma(3.5e15)

        assert updated.gamma == 3.5e15
        assert record.gamma == 10.0
        np.testing.assert_array_equal(updated.tme, record.tme)

    def test_from_parameters_ignores_extra_keys(self):
        parameters = {"sigma": 5.0, "mode": "linear", "photoreceptor_type": "cone"}

        record = ParameterRecord.from_parameters(
            parameters, [0.0, 1.0], [0.0, 0.0], gamma=2.0
        )

        assert record.sigma == 5.0
        assert record.mode == "linear"
        assert record.gamma == 2.0

    def test_from_parameters_model(self):
        parameters = PhotoreceptorParameters(sigma=7.0)

        record = ParameterRecord.from_parameters(parameters, [0.0, 1.0], [0.0, 0.0])

        assert record.sigma == 7.0


class TestConfigModels:
    def test_defaults_are_reported(self, capsys):
        PhotoreceptorParameters(sigma=1.0)

        captured = capsys.readouterr()
        assert "Parameter 'phi' not provided" in captured.out
        assert "Parameter 'sigma' not provided" not in captured.out

    def test_record_does_not_report_defaults(self, capsys):
        ParameterRecord(tme=[0.0, 1.0], stm=[0.0, 0.0])

        assert "not provided" not in capsys.readouterr().out

    def test_simulation_n_timepoints(self):
        simulation = SimulationParameters(duration_seconds=0.5, dt_seconds=0.001)

        assert simulation.n_timepoints == 500

    def test_simulation_needs_two_timepoints(self):
        with pytest.raises(ValidationError):
            SimulationParameters(duration_seconds=0.001, dt_seconds=0.001)

    def test_validate_params(self, raw_config):
        config = validate_params(raw_config)

        assert config is raw_config
        assert config.photoreceptor_parameters.mode == "linear"
        assert config.photoreceptor_parameters.sigma == 10.0
        assert config.photoreceptor_parameters.phi == 22.0
        assert config.simulation_parameters.n_timepoints == 500
        assert config.run.simulate_photoreceptor is False

    def test_validate_params_rejects_bad_mode(self, raw_config):
        raw_config.photoreceptor_parameters.mode = "cubic"

        with pytest.raises(ValidationError):
            validate_params(raw_config)
