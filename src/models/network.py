"""
Feedforward classifier for cardiovascular disease risk.

Architecture:
    Input (11 features) -> Dense(64, ReLU) -> Dense(32, ReLU) -> Dense(1, sigmoid)

Compiled with Adam (default learning rate) minimising binary cross-entropy.
"""
from typing import Optional

import torch
import torch.nn as nn

from src.models.encoder import FEATURE_COLS


INPUT_DIM = len(FEATURE_COLS)
DEFAULT_LEARNING_RATE = 0.001


class HeartDiseaseModel:
    """Network, optimizer and loss bundled together, plus how many epochs it has seen."""

    def __init__(self, net: nn.Module, optimizer: torch.optim.Optimizer, criterion: nn.Module):
        self.net = net
        self.optimizer = optimizer
        self.criterion = criterion
        self.epochs_trained = 0

    @property
    def is_trained(self) -> bool:
        return self.epochs_trained > 0

    def forward(self, X: torch.Tensor) -> torch.Tensor:
        return self.net(X).squeeze(1)

    def predict_proba(self, X: torch.Tensor) -> torch.Tensor:
        self.net.eval()
        with torch.no_grad():
            return self.forward(X)


def build_network(seed: Optional[int] = None) -> nn.Sequential:
    if seed is not None:
        torch.manual_seed(seed)

    net = nn.Sequential(
        nn.Linear(INPUT_DIM, 64),
        nn.ReLU(),
        nn.Linear(64, 32),
        nn.ReLU(),
        nn.Linear(32, 1),
        nn.Sigmoid(),
    )

    for layer in net:
        if isinstance(layer, nn.Linear):
            nn.init.xavier_uniform_(layer.weight)
            nn.init.zeros_(layer.bias)

    return net


def create_model(
    seed: Optional[int] = None,
    learning_rate: float = DEFAULT_LEARNING_RATE,
) -> HeartDiseaseModel:
    net = build_network(seed)
    optimizer = torch.optim.Adam(net.parameters(), lr=learning_rate)
    return HeartDiseaseModel(net, optimizer, nn.BCELoss())
