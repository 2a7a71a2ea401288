from __future__ import annotations

from typing import List, Optional

import typer

from .data_models import TrainConfig
from .errors import FlightCodeClassifierError
from .evaluate import ProgressReporter, evaluate as evaluate_model
from .features import load_records
from .persistence import load_model, write_model_card
from .train import train_model
from .utils import configure_logging

app = typer.Typer(add_completion=False, help="Flight code -> IATA aircraft code classifier")


@app.callback()
def main(log_level: str = typer.Option("INFO", help="Log level")):
    configure_logging(log_level)


def _fail(e: Exception) -> None:
    typer.secho(f"{type(e).__name__}: {e}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.command()
def train(
    data: str = typer.Option(..., help="Training CSV: flight code, IATA code"),
    model_out: str = typer.Option(..., help="Where to write the model artifact"),
    card_out: Optional[str] = typer.Option(None, help="Optional model card JSON"),
    random_state: int = 0,
    char_ngram_max: int = 3,
    max_iter: int = 1000,
):
    cfg = TrainConfig(random_state=random_state, char_ngram_max=char_ngram_max, max_iter=max_iter)
    try:
        model = train_model(load_records(data), destination=model_out, config=cfg)
        if card_out:
            write_model_card(model.card, card_out)
    except FlightCodeClassifierError as e:
        _fail(e)
    typer.echo(f"Trained on {model.card.train_rows} rows, {len(model.labels)} labels "
               f"in {model.card.training_seconds:.2f} secs")


@app.command()
def evaluate(
    model: str = typer.Option(..., help="Model artifact"),
    data: str = typer.Option(..., help="Evaluation CSV: flight code, IATA code"),
    workers: int = typer.Option(1, min=1),
    correct_every: int = 300,
    incorrect_every: int = 30,
):
    try:
        trained = load_model(model)
        result = evaluate_model(
            trained,
            load_records(data),
            workers=workers,
            reporter=ProgressReporter(correct_every, incorrect_every),
        )
    except FlightCodeClassifierError as e:
        _fail(e)
    typer.echo(f"Accuracy: {result.accuracy:.4f} ({result.tally.correct}/{result.tally.total})")


@app.command()
def run(
    train_data: str = typer.Option(...),
    eval_data: str = typer.Option(...),
    model_out: str = typer.Option(...),
    workers: int = typer.Option(1, min=1),
):
    """Train, save, reload from disk and evaluate."""
    try:
        # A failed save aborts here; evaluation reads the artifact back
        train_model(load_records(train_data), destination=model_out)
        result = evaluate_model(
            load_model(model_out), load_records(eval_data), workers=workers, reporter=ProgressReporter()
        )
    except FlightCodeClassifierError as e:
        _fail(e)
    typer.echo(f"Accuracy: {result.accuracy:.4f}")


@app.command()
def predict(
    codes: List[str] = typer.Argument(..., help="Flight codes to classify"),
    model: str = typer.Option(..., help="Model artifact"),
):
    try:
        predictions = load_model(model).predict_many(codes)
    except FlightCodeClassifierError as e:
        _fail(e)
    for code, p in zip(codes, predictions):
        typer.echo(f"{code}\t{p.predicted_label}\t{p.confidence:.4f}")


if __name__ == "__main__":
    app()
