from typing import List, Optional                # Typing helpers for list-based and optional fields

from pydantic import BaseModel, Field           # BaseModel provides data validation and serialization


class HeartDiseaseRequest(BaseModel):           # Request schema: the 11 already-coded input fields
    age: float = Field(..., ge=0, le=120)
    sex: int = Field(..., ge=0, le=1)           # 1 = M, 0 = F
    chest_pain_type: int = Field(..., ge=0, le=3)  # ATA, NAP, ASY, TA
    resting_bp: float = Field(..., ge=0, le=300)
    cholesterol: float = Field(..., ge=0, le=700)
    fasting_bs: int = Field(..., ge=0, le=1)
    resting_ecg: int = Field(..., ge=0, le=2)   # Normal, ST, LVH
    max_hr: float = Field(..., ge=0, le=250)
    exercise_angina: int = Field(..., ge=0, le=1)  # 1 = Y, 0 = N
    oldpeak: float = Field(..., ge=-10.0, le=10.0)
    st_slope: int = Field(..., ge=0, le=2)      # Up, Flat, Down

    def to_features(self) -> List[float]:       # Ordered feature vector expected by the model
        return [
            self.age,
            self.sex,
            self.chest_pain_type,
            self.resting_bp,
            self.cholesterol,
            self.fasting_bs,
            self.resting_ecg,
            self.max_hr,
            self.exercise_angina,
            self.oldpeak,
            self.st_slope,
        ]


class PredictionResponse(BaseModel):            # Response schema returned after prediction
    prediction: str                             # "Positive ..." or "Negative for Cardiovascular Disease"
    probability: float                          # Sigmoid output of the model


class TrainingStatusResponse(BaseModel):        # Response schema for training progress polling
    state: str                                  # idle / training / ready / failed / cancelled
    model_ready: bool
    training_accuracy: List[float]              # Per-epoch training accuracy (0-1)
    epochs_run: int
    error: Optional[str] = None
